"""Utilities for communicating with the Trakt API."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

import httpx

from ..config import Settings
from ..models import UserConfig, WatchedTitle, WatchHistory
from ..utils import normalize_title

logger = logging.getLogger(__name__)


class TraktClient:
    """Thin wrapper around the public Trakt user endpoints."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client
        self._max_retries = 3

    def _headers(self, client_id: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "trakt-api-version": "2",
            "trakt-api-key": client_id,
            "User-Agent": f"{self._settings.app_name} (geminirecs)",
        }

    def _window_start(self) -> str:
        start = datetime.now(timezone.utc) - timedelta(
            days=self._settings.history_window_days
        )
        return start.strftime("%Y-%m-%dT%H:%M:%S.000Z")

    async def fetch_watched_movies(self, config: UserConfig) -> WatchHistory:
        """Return recent movies to seed suggestions plus the titles to avoid."""

        username = config.trakt_username
        client_id = config.trakt_client_id
        if not (username and client_id):
            logger.error("Trakt credentials are missing in configuration")
            return WatchHistory()

        history = await self._get_list(
            f"/users/{username}/history/movies",
            client_id=client_id,
            params={
                "start_at": self._window_start(),
                "limit": self._settings.history_page_limit,
            },
            label="movie history",
        )
        if history is None:
            return WatchHistory()

        media = [entry.get("movie") for entry in history if isinstance(entry, dict)]
        return WatchHistory(
            recent=self._seed_titles(media),
            all_watched=self._deny_list(media),
        )

    async def fetch_watched_shows(self, config: UserConfig) -> WatchHistory:
        """Return recent shows plus every show the user has ever watched."""

        username = config.trakt_username
        client_id = config.trakt_client_id
        if not (username and client_id):
            logger.error("Trakt credentials are missing in configuration")
            return WatchHistory()

        history, watched = await asyncio.gather(
            self._get_list(
                f"/users/{username}/history/shows",
                client_id=client_id,
                params={
                    "start_at": self._window_start(),
                    "limit": self._settings.history_page_limit,
                },
                label="show history",
            ),
            self._get_list(
                f"/users/{username}/watched/shows",
                client_id=client_id,
                label="watched shows",
            ),
        )
        if history is None or watched is None:
            return WatchHistory()

        recent_media = [entry.get("show") for entry in history if isinstance(entry, dict)]
        library_media = [entry.get("show") for entry in watched if isinstance(entry, dict)]
        return WatchHistory(
            recent=self._seed_titles(recent_media),
            all_watched=self._deny_list([*library_media, *recent_media]),
        )

    async def _get_list(
        self,
        path: str,
        *,
        client_id: str,
        params: dict[str, Any] | None = None,
        label: str,
    ) -> list[Any] | None:
        """GET a Trakt list endpoint, retrying transient failures."""

        attempt = 0
        while True:
            try:
                response = await self._client.get(
                    path, headers=self._headers(client_id), params=params
                )
            except httpx.HTTPError as exc:
                attempt += 1
                if attempt <= self._max_retries:
                    backoff = min(2 ** (attempt - 1), 5) + (0.1 * attempt)
                    logger.info(
                        "Transient error talking to Trakt (%s). Retrying %s in %.1fs",
                        exc.__class__.__name__,
                        label,
                        backoff,
                    )
                    await asyncio.sleep(backoff)
                    continue
                logger.warning("Error fetching Trakt %s: %s", label, exc)
                return None

            if 500 <= response.status_code < 600:
                attempt += 1
                if attempt <= self._max_retries:
                    backoff = min(2 ** (attempt - 1), 5) + (0.1 * attempt)
                    logger.info(
                        "Trakt %s during %s fetch. Retrying in %.1fs",
                        response.status_code,
                        label,
                        backoff,
                    )
                    await asyncio.sleep(backoff)
                    continue
                logger.warning("Error fetching Trakt %s: %s", label, response.text)
                return None
            break

        if response.status_code >= 400:
            logger.warning(
                "Trakt rejected %s request (%s): %s",
                label,
                response.status_code,
                response.text,
            )
            return None
        try:
            data = response.json()
        except ValueError:
            logger.warning("Unexpected non-JSON Trakt response for %s", label)
            return None
        if not isinstance(data, list):
            logger.warning("Unexpected Trakt response structure for %s", label)
            return None
        return data

    def _seed_titles(self, media: Iterable[Any]) -> list[WatchedTitle]:
        seeds: list[WatchedTitle] = []
        seen: set[object] = set()
        for item in media:
            if not isinstance(item, dict):
                continue
            title = item.get("title")
            if not isinstance(title, str) or not title.strip():
                continue
            ids = item.get("ids") if isinstance(item.get("ids"), dict) else {}
            trakt_id = ids.get("trakt")
            identity = trakt_id if trakt_id is not None else normalize_title(title)
            if identity in seen:
                continue
            seen.add(identity)
            year = item.get("year")
            seeds.append(
                WatchedTitle(
                    title=title.strip(),
                    year=year if isinstance(year, int) else None,
                    trakt_id=trakt_id if isinstance(trakt_id, int) else None,
                    imdb_id=ids.get("imdb") if isinstance(ids.get("imdb"), str) else None,
                )
            )
            if len(seeds) >= self._settings.history_seed_count:
                break
        return seeds

    @staticmethod
    def _deny_list(media: Iterable[Any]) -> list[str]:
        titles: list[str] = []
        seen: set[str] = set()
        for item in media:
            if not isinstance(item, dict):
                continue
            title = item.get("title")
            if not isinstance(title, str):
                continue
            normalized = normalize_title(title)
            if normalized and normalized not in seen:
                seen.add(normalized)
                titles.append(normalized)
        return titles
