"""Catalog handler composing Trakt, Gemini and TMDB into one response."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Sequence

from ..catalogs import definition_for
from ..config import Settings
from ..models import (
    CatalogExtra,
    CatalogResponse,
    ContentType,
    MetaPreview,
    Suggestion,
    UserConfig,
)
from ..utils import normalize_title
from .gemini import GeminiClient
from .tmdb import TMDBClient
from .trakt import TraktClient

logger = logging.getLogger(__name__)

ERROR_CARD_NAME = "Heads up"
ERROR_CARD_POSTER = (
    "https://placehold.co/500x750/1a1d24/8b5cf6?text=Loading...\\nSomething+went+wrong"
)
ERROR_CARD_DESCRIPTION = (
    "Google Gemini or Trakt did not return any results. Your recent history may be "
    "too short, an API key may be wrong, or Gemini's free tier may be overloaded. "
    "Please try again in a couple of minutes."
)


class RecommendationService:
    """Run the history, suggestions and metadata pipeline for a catalog request."""

    def __init__(
        self,
        settings: Settings,
        trakt_client: TraktClient,
        gemini_client: GeminiClient,
        tmdb_client: TMDBClient,
    ):
        self._settings = settings
        self._trakt = trakt_client
        self._gemini = gemini_client
        self._tmdb = tmdb_client

    def clear_caches(self) -> None:
        """Forget cached suggestions and metadata lookups."""

        self._gemini.clear_cache()
        self._tmdb.clear_cache()

    async def get_catalog(
        self,
        content_type: str,
        catalog_id: str,
        extra: CatalogExtra,
        config: UserConfig,
    ) -> CatalogResponse:
        """Return the catalog payload for one Stremio catalog request."""

        # Only the first page is generated; later pages would re-hit every API.
        if extra.skip > 0:
            return CatalogResponse()

        definition = definition_for(content_type, catalog_id)
        if definition is None:
            return CatalogResponse()

        try:
            metas = await self._build_metas(definition.content_type, extra, config)
        except Exception:
            logger.exception("Error serving %s catalog", content_type)
            return CatalogResponse()

        logger.info(
            "Successfully prepared %s %s items for Stremio", len(metas), content_type
        )
        if not metas:
            return CatalogResponse(
                metas=[self._error_card(definition.content_type)],
                cache_max_age=self._settings.error_cache_max_age,
            )
        return CatalogResponse(
            metas=metas,
            cache_max_age=self._settings.catalog_cache_max_age,
            stale_revalidate=self._settings.catalog_stale_revalidate,
        )

    async def _build_metas(
        self,
        content_type: ContentType,
        extra: CatalogExtra,
        config: UserConfig,
    ) -> list[MetaPreview]:
        logger.info("Fetching %s recommendations", content_type)
        if content_type == "series":
            history = await self._trakt.fetch_watched_shows(config)
        else:
            history = await self._trakt.fetch_watched_movies(config)
        if history.is_empty():
            return []

        suggestions = await self._gemini.recommend(
            history.recent,
            config,
            content_type,
            history.all_watched,
            extra.genre,
        )
        metas = await self._resolve(suggestions, content_type, config, history.all_watched)

        if not metas and suggestions:
            logger.warning(
                "0 results from TMDB. Retrying with fresh Gemini recommendations"
            )
            fresh = await self._gemini.recommend(
                history.recent,
                config,
                content_type,
                history.all_watched,
                extra.genre,
                force_refresh=True,
            )
            metas = await self._resolve(fresh, content_type, config, history.all_watched)
        return metas

    async def _resolve(
        self,
        suggestions: Sequence[Suggestion],
        content_type: ContentType,
        config: UserConfig,
        watched_titles: Sequence[str],
    ) -> list[MetaPreview]:
        """Look every suggestion up in parallel, keeping the model's order."""

        if not suggestions:
            return []
        results = await asyncio.gather(
            *(
                self._tmdb.search(item.title, item.year, content_type, config)
                for item in suggestions
            ),
            return_exceptions=True,
        )

        watched = set(watched_titles)
        metas: list[MetaPreview] = []
        seen_ids: set[str] = set()
        for item, meta in zip(suggestions, results):
            if isinstance(meta, Exception):
                logger.warning("TMDB lookup failed for %r: %s", item.title, meta)
                continue
            if meta is None or meta.id in seen_ids:
                continue
            if normalize_title(meta.name) in watched:
                continue
            seen_ids.add(meta.id)
            metas.append(meta)
        return metas

    @staticmethod
    def _error_card(content_type: ContentType) -> MetaPreview:
        return MetaPreview(
            id=f"gemini-error-{int(time.time() * 1000)}",
            type=content_type,
            name=ERROR_CARD_NAME,
            poster=ERROR_CARD_POSTER,
            description=ERROR_CARD_DESCRIPTION,
            release_info="Error",
        )
