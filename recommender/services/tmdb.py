"""Utilities for resolving suggestions against The Movie Database (TMDB)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..cache import TTLCache
from ..config import Settings
from ..models import ContentType, MetaPreview, UserConfig

logger = logging.getLogger(__name__)

POSTER_BASE_URL = "https://image.tmdb.org/t/p/w500"
BACKDROP_BASE_URL = "https://image.tmdb.org/t/p/original"

# v4 read access tokens are long JWTs; v3 keys are 32 hex characters.
BEARER_TOKEN_MIN_LENGTH = 50


class TMDBClient:
    """Client responsible for turning a title and year into a Stremio meta."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        cache: TTLCache | None = None,
    ):
        self._settings = settings
        self._client = http_client
        if cache is None:
            cache = TTLCache(settings.tmdb_cache_size, settings.tmdb_cache_ttl_seconds)
        self._cache = cache

    def clear_cache(self) -> None:
        self._cache.clear()

    async def search_movie(
        self, title: str, year: int | None, config: UserConfig
    ) -> MetaPreview | None:
        return await self.search(title, year, "movie", config)

    async def search_series(
        self, title: str, year: int | None, config: UserConfig
    ) -> MetaPreview | None:
        return await self.search(title, year, "series", config)

    async def search(
        self,
        title: str,
        year: int | None,
        content_type: ContentType,
        config: UserConfig,
    ) -> MetaPreview | None:
        """Return the meta for the best TMDB match, or ``None``."""

        api_key = config.tmdb_api_key
        if not api_key:
            logger.error("TMDB API key is missing in configuration")
            return None
        if not (title or "").strip():
            return None

        cache_key = f"{content_type}_{title}_{year}"
        cached = self._cache.get(cache_key)
        if cached is not None:
            # False marks a title we already know cannot be resolved.
            return cached or None

        headers, auth_params = self._auth(api_key)
        try:
            result = await self._search(
                title, year, content_type, headers=headers, auth_params=auth_params
            )
            if result is None:
                logger.warning("TMDB: no match for %r (%s)", title, year)
                self._cache.set(cache_key, False)
                return None

            imdb_id = await self._fetch_imdb_id(
                result["id"],
                content_type,
                headers=headers,
                auth_params=auth_params,
            )
        except (httpx.HTTPError, ValueError, KeyError) as exc:
            logger.error("Error searching TMDB for %r: %s", title, exc)
            return None

        if not imdb_id:
            logger.warning("TMDB: no imdb_id for %r (%s), skipping", title, year)
            self._cache.set(cache_key, False)
            return None

        meta = self._build_meta(result, imdb_id, content_type)
        self._cache.set(cache_key, meta)
        return meta

    @staticmethod
    def _auth(api_key: str) -> tuple[dict[str, str], dict[str, str]]:
        if len(api_key) > BEARER_TOKEN_MIN_LENGTH:
            return {"Authorization": f"Bearer {api_key}"}, {}
        return {}, {"api_key": api_key}

    async def _search(
        self,
        title: str,
        year: int | None,
        content_type: ContentType,
        *,
        headers: dict[str, str],
        auth_params: dict[str, str],
    ) -> dict[str, Any] | None:
        endpoint = "/search/tv" if content_type == "series" else "/search/movie"
        params: dict[str, Any] = {**auth_params, "query": title, "language": "en-US"}

        results: list[dict[str, Any]] = []
        if year:
            year_param = "first_air_date_year" if content_type == "series" else "year"
            results = await self._get_results(
                endpoint, {**params, year_param: year}, headers=headers
            )
        if not results:
            # Models often give a season year instead of the premiere year.
            results = await self._get_results(endpoint, params, headers=headers)
        if not results:
            return None
        return self._select_best_match(title, year, results, content_type)

    async def _get_results(
        self, endpoint: str, params: dict[str, Any], *, headers: dict[str, str]
    ) -> list[dict[str, Any]]:
        response = await self._client.get(endpoint, params=params, headers=headers)
        response.raise_for_status()
        data = response.json()
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            return []
        return [
            entry
            for entry in results
            if isinstance(entry, dict) and isinstance(entry.get("id"), int)
        ]

    def _select_best_match(
        self,
        title: str,
        year: int | None,
        results: list[dict[str, Any]],
        content_type: ContentType,
    ) -> dict[str, Any]:
        normalized_title = title.strip().casefold()
        exact_title: dict[str, Any] | None = None
        for candidate in results:
            candidate_title = self._title_of(candidate, content_type)
            if candidate_title.strip().casefold() != normalized_title:
                continue
            if year is None or self._year_of(candidate, content_type) == year:
                return candidate
            if exact_title is None:
                exact_title = candidate
        return exact_title or results[0]

    async def _fetch_imdb_id(
        self,
        tmdb_id: int,
        content_type: ContentType,
        *,
        headers: dict[str, str],
        auth_params: dict[str, str],
    ) -> str | None:
        kind = "tv" if content_type == "series" else "movie"
        response = await self._client.get(
            f"/{kind}/{tmdb_id}/external_ids", params=auth_params, headers=headers
        )
        response.raise_for_status()
        data = response.json()
        imdb_id = data.get("imdb_id") if isinstance(data, dict) else None
        if isinstance(imdb_id, str) and imdb_id.strip():
            return imdb_id.strip()
        return None

    def _build_meta(
        self, result: dict[str, Any], imdb_id: str, content_type: ContentType
    ) -> MetaPreview:
        release = self._date_of(result, content_type)
        return MetaPreview(
            id=imdb_id,
            type=content_type,
            name=self._title_of(result, content_type) or imdb_id,
            poster=self._build_image_url(result.get("poster_path"), POSTER_BASE_URL),
            background=self._build_image_url(
                result.get("backdrop_path"), BACKDROP_BASE_URL
            ),
            description=result.get("overview") or None,
            release_info=release[:4] if release else None,
        )

    @staticmethod
    def _title_of(result: dict[str, Any], content_type: ContentType) -> str:
        if content_type == "series":
            value = result.get("name") or result.get("original_name")
        else:
            value = result.get("title") or result.get("original_title")
        return str(value or "")

    @staticmethod
    def _date_of(result: dict[str, Any], content_type: ContentType) -> str | None:
        key = "first_air_date" if content_type == "series" else "release_date"
        value = result.get(key)
        if isinstance(value, str) and value:
            return value
        return None

    def _year_of(self, result: dict[str, Any], content_type: ContentType) -> int | None:
        date_value = self._date_of(result, content_type)
        if not date_value or len(date_value) < 4:
            return None
        try:
            return int(date_value[:4])
        except ValueError:
            return None

    @staticmethod
    def _build_image_url(path: Any, base_url: str) -> str | None:
        if not isinstance(path, str) or not path:
            return None
        if path.startswith("http"):
            return path
        return f"{base_url}{path}"
