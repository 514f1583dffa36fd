"""Integration helpers for the Google Gemini generateContent API."""

from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx
from pydantic import ValidationError

from ..cache import TTLCache
from ..config import Settings
from ..models import ContentType, Suggestion, UserConfig, WatchedTitle
from ..utils import extract_json_list, normalize_title

logger = logging.getLogger(__name__)

QUOTA_STATUS_CODES = {429, 503}

MOVIE_PROMPT_TEMPLATE = """Based on the following movies I recently watched:
{history}
Recommend {count} popular, widely-known movies I might like. {genre_instruction}
IMPORTANT: Only recommend well-known titles that are easy to find in databases like IMDB/TMDB.
Do not include the movies I already watched in your recommendations.{exclusions}
Output ONLY a JSON array of objects. No markdown, no explanations, just the raw JSON. Each object must have exactly two properties:
- "title": The title of the movie in English (string)
- "year": The release year of the movie (number)
Example: [{{"title": "Inception", "year": 2010}}, {{"title": "The Matrix", "year": 1999}}]"""

SERIES_PROMPT_TEMPLATE = """Based on the following TV series I recently watched:
{history}
Recommend {count} popular, widely-known TV series I might like. {genre_instruction}
IMPORTANT: Only recommend well-known titles that are easy to find in databases like IMDB/TMDB.
Do not include the series I already watched in your recommendations.{exclusions}
Output ONLY a JSON array of objects. No markdown, no explanations, just the raw JSON. Each object must have exactly two properties:
- "title": The title of the TV series in English (string)
- "year": The release year of the TV series (number)
Example: [{{"title": "Breaking Bad", "year": 2008}}, {{"title": "Stranger Things", "year": 2016}}]"""


class GeminiError(RuntimeError):
    """Raised when Gemini returns an unusable response."""


class GeminiQuotaError(GeminiError):
    """Raised when a model is rate limited or temporarily unavailable."""


class GeminiClient:
    """Client responsible for asking Gemini for title suggestions."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        cache: TTLCache | None = None,
    ):
        self._settings = settings
        self._client = http_client
        if cache is None:
            cache = TTLCache(
                settings.gemini_cache_size, settings.gemini_cache_ttl_seconds
            )
        self._cache = cache

    def clear_cache(self) -> None:
        self._cache.clear()

    async def recommend_movies(
        self,
        history: Sequence[WatchedTitle],
        config: UserConfig,
        watched_titles: Sequence[str] = (),
        genre: str | None = None,
        force_refresh: bool = False,
    ) -> list[Suggestion]:
        return await self.recommend(
            history, config, "movie", watched_titles, genre, force_refresh
        )

    async def recommend_series(
        self,
        history: Sequence[WatchedTitle],
        config: UserConfig,
        watched_titles: Sequence[str] = (),
        genre: str | None = None,
        force_refresh: bool = False,
    ) -> list[Suggestion]:
        return await self.recommend(
            history, config, "series", watched_titles, genre, force_refresh
        )

    async def recommend(
        self,
        history: Sequence[WatchedTitle],
        config: UserConfig,
        content_type: ContentType,
        watched_titles: Sequence[str] = (),
        genre: str | None = None,
        force_refresh: bool = False,
    ) -> list[Suggestion]:
        """Return suggestions seeded by ``history``, or ``[]`` on failure."""

        api_key = config.gemini_api_key
        if not api_key:
            logger.error("Gemini API key is missing in configuration")
            return []
        if not history:
            return []

        history_text = ", ".join(entry.label() for entry in history)
        cache_key = f"{content_type}_{genre or 'all'}_{history_text}"
        if not force_refresh:
            cached = self._cache.get(cache_key)
            if cached is not None:
                logger.info("Returning Gemini recommendations from cache for %s", cache_key)
                return list(cached)

        prompt = self._build_prompt(
            history_text,
            content_type=content_type,
            watched_titles=watched_titles,
            genre=genre,
        )

        try:
            text = await self._generate_with_fallback(prompt, api_key=api_key)
            suggestions = self._parse_suggestions(text)
        except (GeminiError, httpx.HTTPError, ValueError) as exc:
            logger.error("Error generating recommendations with Gemini: %s", exc)
            return []

        if suggestions:
            self._cache.set(cache_key, tuple(suggestions))
        return suggestions

    def _build_prompt(
        self,
        history_text: str,
        *,
        content_type: ContentType,
        watched_titles: Sequence[str],
        genre: str | None,
    ) -> str:
        limit = self._settings.exclusion_limit
        excluded = [title for title in watched_titles if title][:limit]
        exclusions = ""
        if excluded:
            exclusions = (
                "\nDo absolutely NOT include these specific titles you already know I watched:\n- "
                + "\n- ".join(excluded)
            )

        if genre:
            genre_instruction = f"ALL recommendations MUST strictly belong to the {genre} genre."
        elif content_type == "series":
            genre_instruction = "Consider shows with similar themes, genres, or actors."
        else:
            genre_instruction = (
                "Consider movies with similar themes, genres, lead actors, or directors."
            )

        template = SERIES_PROMPT_TEMPLATE if content_type == "series" else MOVIE_PROMPT_TEMPLATE
        return template.format(
            history=history_text,
            count=self._settings.recommendation_count,
            genre_instruction=genre_instruction,
            exclusions=exclusions,
        )

    async def _generate_with_fallback(self, prompt: str, *, api_key: str) -> str:
        """Walk the model chain, moving on only when a model is out of quota."""

        last_error: GeminiQuotaError | None = None
        for model in self._settings.gemini_models:
            try:
                logger.info("Calling Gemini API with %s", model)
                text = await self._generate(model, prompt, api_key=api_key)
            except GeminiQuotaError as exc:
                last_error = exc
                logger.warning(
                    "Model %s quota exceeded or unavailable. Trying next...", model
                )
                continue
            logger.info("Gemini responded with model %s", model)
            return text

        logger.error("All Gemini models failed due to quota limits")
        raise last_error or GeminiError("No Gemini models configured")

    async def _generate(self, model: str, prompt: str, *, api_key: str) -> str:
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"responseMimeType": "application/json"},
        }
        headers = {
            "x-goog-api-key": api_key,
            "Content-Type": "application/json",
        }
        response = await self._client.post(
            f"/models/{model}:generateContent", json=payload, headers=headers
        )
        if response.status_code >= 400:
            message = response.text
            if response.status_code in QUOTA_STATUS_CODES or _mentions_quota(message):
                raise GeminiQuotaError(f"{response.status_code}: {message}")
            raise GeminiError(f"{response.status_code}: {message}")

        data = response.json()
        if not isinstance(data, dict):
            raise GeminiError("Unexpected Gemini response structure")
        candidates = data.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            feedback = data.get("promptFeedback")
            reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
            raise GeminiError(f"Model returned no candidates ({reason or 'unknown'})")
        candidate = candidates[0]
        content = candidate.get("content") if isinstance(candidate, dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            raise GeminiError("Model response missing content parts")
        text = "".join(
            part["text"]
            for part in parts
            if isinstance(part, dict) and isinstance(part.get("text"), str)
        ).strip()
        if not text:
            raise GeminiError("Model response missing text")
        return text

    @staticmethod
    def _parse_suggestions(text: str) -> list[Suggestion]:
        suggestions: list[Suggestion] = []
        seen: set[tuple[str, int | None]] = set()
        for entry in extract_json_list(text):
            if not isinstance(entry, dict):
                continue
            try:
                suggestion = Suggestion.model_validate(entry)
            except ValidationError:
                continue
            key = (normalize_title(suggestion.title), suggestion.year)
            if key in seen:
                continue
            seen.add(key)
            suggestions.append(suggestion)
        return suggestions


def _mentions_quota(message: Any) -> bool:
    lowered = str(message or "").lower()
    return "quota" in lowered or "resource_exhausted" in lowered
