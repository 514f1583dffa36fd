"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Iterable, Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEFAULT_GEMINI_MODELS: tuple[str, ...] = (
    "gemini-2.5-flash",
    "gemini-2.5-flash-lite",
    "gemini-2.0-flash-lite-001",
    "gemini-flash-lite-latest",
    "gemini-pro-latest",
)


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Gemini AI Recommender", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=7005, alias="PORT")

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    trakt_api_url: HttpUrl = Field(
        default="https://api.trakt.tv", alias="TRAKT_API_URL"
    )
    tmdb_api_url: HttpUrl = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_API_URL"
    )
    gemini_api_url: HttpUrl = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        alias="GEMINI_API_URL",
    )

    # Server-side credentials used when an install URL omits a key.
    trakt_username: str | None = Field(default=None, alias="TRAKT_USERNAME")
    trakt_client_id: str | None = Field(default=None, alias="TRAKT_CLIENT_ID")
    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    gemini_api_key: str | None = Field(default=None, alias="GEMINI_API_KEY")

    gemini_models: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_GEMINI_MODELS, alias="GEMINI_MODELS"
    )

    history_window_days: int = Field(
        default=30, alias="HISTORY_WINDOW_DAYS", ge=1, le=365
    )
    history_page_limit: int = Field(
        default=100, alias="TRAKT_HISTORY_LIMIT", ge=1, le=1_000
    )
    history_seed_count: int = Field(
        default=5, alias="HISTORY_SEED_COUNT", ge=1, le=20
    )
    exclusion_limit: int = Field(
        default=50, alias="EXCLUSION_LIMIT", ge=0, le=500
    )
    recommendation_count: int = Field(
        default=10, alias="RECOMMENDATION_COUNT", ge=1, le=40
    )

    gemini_cache_ttl_seconds: int = Field(
        default=216_000, alias="GEMINI_CACHE_TTL", ge=0
    )
    gemini_cache_size: int = Field(default=100, alias="GEMINI_CACHE_SIZE", ge=1)
    tmdb_cache_ttl_seconds: int = Field(
        default=259_200, alias="TMDB_CACHE_TTL", ge=0
    )
    tmdb_cache_size: int = Field(default=500, alias="TMDB_CACHE_SIZE", ge=1)

    catalog_cache_max_age: int = Field(
        default=259_200, alias="CATALOG_CACHE_MAX_AGE", ge=0
    )
    catalog_stale_revalidate: int = Field(
        default=86_400, alias="CATALOG_STALE_REVALIDATE", ge=0
    )
    error_cache_max_age: int = Field(
        default=300, alias="ERROR_CACHE_MAX_AGE", ge=0
    )

    @field_validator(
        "trakt_username",
        "trakt_client_id",
        "tmdb_api_key",
        "gemini_api_key",
        mode="before",
    )
    @classmethod
    def _strip_blank(cls, value: object) -> object:
        if isinstance(value, str):
            stripped = value.strip()
            return stripped or None
        return value

    @field_validator("gemini_models", mode="before")
    @classmethod
    def _parse_models(cls, value: object) -> tuple[str, ...]:
        """Normalise the model fallback chain from environment values."""

        if value is None:
            return DEFAULT_GEMINI_MODELS
        if isinstance(value, str):
            raw_values = [part.strip() for part in value.split(",")]
        elif isinstance(value, Iterable):
            raw_values = [str(part).strip() for part in value]
        else:
            raise TypeError("GEMINI_MODELS must be a string or iterable of strings")

        cleaned: list[str] = []
        for entry in raw_values:
            if entry and entry not in cleaned:
                cleaned.append(entry)
        if not cleaned:
            return DEFAULT_GEMINI_MODELS
        return tuple(cleaned)

    @property
    def has_default_credentials(self) -> bool:
        """Whether the server can serve catalogs without per-user keys."""

        return all(
            (
                self.trakt_username,
                self.trakt_client_id,
                self.tmdb_api_key,
                self.gemini_api_key,
            )
        )

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
