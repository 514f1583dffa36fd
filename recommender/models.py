"""Pydantic models describing configuration and catalog payloads."""

from __future__ import annotations

import base64
import binascii
import json
import re
from typing import TYPE_CHECKING, Any, Literal
from urllib.parse import parse_qsl, unquote

from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from .config import Settings

ContentType = Literal["movie", "series"]

_YEAR_RE = re.compile(r"\d{4}")


class UserConfig(BaseModel):
    """Credentials embedded by Stremio in the addon install URL."""

    trakt_username: str | None = None
    trakt_client_id: str | None = None
    tmdb_api_key: str | None = None
    gemini_api_key: str | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _strip_blank(cls, value: object) -> object:
        if value is None:
            return None
        if isinstance(value, str):
            stripped = value.strip()
            return stripped or None
        return str(value)

    @classmethod
    def from_path_segment(cls, raw: str) -> "UserConfig":
        """Parse the ``/{config}/`` segment of an install URL.

        Stremio passes the configuration as URL-encoded JSON; base64url
        encoded JSON is accepted too.
        """

        text = (raw or "").strip()
        if not text:
            raise ValueError("Empty configuration segment")

        payload: Any = None
        for candidate in (text, unquote(text)):
            try:
                payload = json.loads(candidate)
                break
            except json.JSONDecodeError:
                continue
        if payload is None:
            try:
                padded = text + "=" * (-len(text) % 4)
                decoded = base64.urlsafe_b64decode(padded.encode("ascii"))
                payload = json.loads(decoded.decode("utf-8"))
            except (binascii.Error, UnicodeError, ValueError) as exc:
                raise ValueError("Configuration segment is not valid JSON") from exc

        if not isinstance(payload, dict):
            raise ValueError("Configuration must be a JSON object")
        return cls.model_validate(payload)

    def with_fallbacks(self, settings: "Settings") -> "UserConfig":
        """Fill missing keys from the server-side settings."""

        return UserConfig(
            trakt_username=self.trakt_username or settings.trakt_username,
            trakt_client_id=self.trakt_client_id or settings.trakt_client_id,
            tmdb_api_key=self.tmdb_api_key or settings.tmdb_api_key,
            gemini_api_key=self.gemini_api_key or settings.gemini_api_key,
        )


class WatchedTitle(BaseModel):
    """A title from the user's recent history used to seed suggestions."""

    title: str
    year: int | None = None
    trakt_id: int | None = None
    imdb_id: str | None = None

    def label(self) -> str:
        year = self.year if self.year is not None else "?"
        return f"{self.title} ({year})"


class WatchHistory(BaseModel):
    """Seed list plus deny list extracted from Trakt."""

    recent: list[WatchedTitle] = Field(default_factory=list)
    all_watched: list[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.recent


class Suggestion(BaseModel):
    """A single title proposed by the language model."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1)
    year: int | None = None

    @field_validator("year", mode="before")
    @classmethod
    def _coerce_year(cls, value: object) -> int | None:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            return int(value)
        match = _YEAR_RE.search(str(value))
        return int(match.group(0)) if match else None


class MetaPreview(BaseModel):
    """Stremio meta preview returned inside catalog responses."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: ContentType
    name: str
    poster: str | None = None
    background: str | None = None
    description: str | None = None
    release_info: str | None = Field(default=None, alias="releaseInfo")

    def to_stremio(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class CatalogExtra(BaseModel):
    """Extra arguments Stremio appends to catalog requests."""

    skip: int = 0
    genre: str | None = None

    @field_validator("skip", mode="before")
    @classmethod
    def _coerce_skip(cls, value: object) -> int:
        try:
            parsed = int(str(value).strip())
        except (TypeError, ValueError):
            return 0
        return max(parsed, 0)

    @field_validator("genre", mode="before")
    @classmethod
    def _strip_genre(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip() or None
        return value

    @classmethod
    def from_path(cls, extra: str | None) -> "CatalogExtra":
        """Parse the ``skip=20&genre=Action`` segment of a catalog URL."""

        if not extra:
            return cls()
        pairs = dict(parse_qsl(extra, keep_blank_values=False))
        return cls.model_validate(
            {key: value for key, value in pairs.items() if key in {"skip", "genre"}}
        )


class CatalogResponse(BaseModel):
    """Catalog payload together with client caching hints."""

    metas: list[MetaPreview] = Field(default_factory=list)
    cache_max_age: int | None = None
    stale_revalidate: int | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "metas": [meta.to_stremio() for meta in self.metas]
        }
        if self.cache_max_age is not None:
            payload["cacheMaxAge"] = self.cache_max_age
        if self.stale_revalidate is not None:
            payload["staleRevalidate"] = self.stale_revalidate
        return payload

    def cache_control(self) -> str | None:
        """Return the ``Cache-Control`` header value for the payload."""

        if self.cache_max_age is None:
            return None
        parts = [f"max-age={self.cache_max_age}"]
        if self.stale_revalidate is not None:
            parts.append(f"stale-while-revalidate={self.stale_revalidate}")
        return ", ".join(parts) + ", public"
