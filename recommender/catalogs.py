"""Catalog definitions advertised to Stremio."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


ContentType = Literal["movie", "series"]

GENRE_OPTIONS: tuple[str, ...] = (
    "Action",
    "Comedy",
    "Drama",
    "Horror",
    "Sci-Fi",
    "Romance",
    "Thriller",
)


@dataclass(frozen=True)
class CatalogDefinition:
    """Describes one recommendation catalog shown in Stremio."""

    id: str
    name: str
    content_type: ContentType
    genres: tuple[str, ...] = GENRE_OPTIONS

    def to_manifest_entry(self) -> dict[str, object]:
        """Return the manifest catalog entry including supported extras."""

        return {
            "type": self.content_type,
            "id": self.id,
            "name": self.name,
            "extra": [
                {"name": "skip", "isRequired": False},
                {"name": "genre", "isRequired": False, "options": list(self.genres)},
            ],
        }


MOVIE_CATALOG = CatalogDefinition(
    id="gemini-movie-recommendations",
    name="Gemini AI Suggestions",
    content_type="movie",
)
SERIES_CATALOG = CatalogDefinition(
    id="gemini-series-recommendations",
    name="Gemini AI Suggestions",
    content_type="series",
)

CATALOGS: tuple[CatalogDefinition, ...] = (MOVIE_CATALOG, SERIES_CATALOG)


def definition_for(content_type: str, catalog_id: str) -> CatalogDefinition | None:
    """Return the definition matching both the type and the catalog id."""

    for definition in CATALOGS:
        if definition.content_type == content_type and definition.id == catalog_id:
            return definition
    return None
