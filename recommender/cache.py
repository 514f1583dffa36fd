"""Bounded in-memory cache with a fixed time-to-live."""

from __future__ import annotations

import time
from typing import Any, Callable, Hashable


class TTLCache:
    """Insertion-ordered map whose entries expire after ``ttl_seconds``.

    When the cache is full the oldest inserted entry is dropped, regardless
    of how recently it was read. ``None`` is reserved to signal a miss, so
    falsy values such as ``False`` or ``[]`` can be cached as results.
    """

    def __init__(
        self,
        max_size: int,
        ttl_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError("Cache size must be at least 1")
        self._max_size = max_size
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, tuple[float, Any]] = {}

    def get(self, key: Hashable) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at >= self._ttl:
            del self._entries[key]
            return None
        return value

    def set(self, key: Hashable, value: Any) -> None:
        if key in self._entries:
            # Re-inserting moves the key to the back of the eviction order.
            del self._entries[key]
        elif len(self._entries) >= self._max_size:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
        self._entries[key] = (self._clock(), value)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return self.get(key) is not None  # type: ignore[arg-type]
