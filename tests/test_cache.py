"""Tests for the bounded TTL cache."""

from __future__ import annotations

import pytest

from recommender.cache import TTLCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1_000.0

    def __call__(self) -> float:
        return self.now


def test_entries_expire_after_ttl() -> None:
    clock = FakeClock()
    cache = TTLCache(10, 60, clock=clock)
    cache.set("movie_all_Heat (1995)", ["Collateral"])

    clock.now += 59
    assert cache.get("movie_all_Heat (1995)") == ["Collateral"]

    clock.now += 1
    assert cache.get("movie_all_Heat (1995)") is None
    assert len(cache) == 0


def test_full_cache_evicts_oldest_insertion() -> None:
    """Reads do not protect an entry: eviction follows insertion order."""

    cache = TTLCache(2, 60, clock=FakeClock())
    cache.set("a", 1)
    cache.set("b", 2)
    assert cache.get("a") == 1

    cache.set("c", 3)

    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert cache.get("c") == 3


def test_overwriting_key_does_not_evict_others() -> None:
    cache = TTLCache(2, 60, clock=FakeClock())
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("a", 10)

    assert len(cache) == 2
    assert cache.get("a") == 10
    assert cache.get("b") == 2


def test_false_is_a_cached_value() -> None:
    cache = TTLCache(5, 60, clock=FakeClock())
    cache.set("series_Unknown_None", False)

    assert cache.get("series_Unknown_None") is False
    assert "series_Unknown_None" in cache


def test_clear_drops_everything() -> None:
    cache = TTLCache(5, 60)
    cache.set("a", 1)
    cache.set("b", 2)

    cache.clear()

    assert len(cache) == 0
    assert cache.get("a") is None


def test_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        TTLCache(0, 60)
