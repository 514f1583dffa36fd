"""Addon manifest advertised to Stremio."""

from __future__ import annotations

from typing import Any

from .catalogs import CATALOGS
from .config import Settings

MANIFEST_ID = "com.geminirecs.python"
MANIFEST_VERSION = "2.1.0"

CONFIG_FIELDS: tuple[tuple[str, str], ...] = (
    ("trakt_username", "Trakt Username"),
    ("trakt_client_id", "Trakt Client ID"),
    ("tmdb_api_key", "TMDB API Key"),
    ("gemini_api_key", "Gemini API Key"),
)


def build_manifest(settings: Settings) -> dict[str, Any]:
    """Return the manifest, requiring configuration unless the server has keys."""

    configuration_required = not settings.has_default_credentials
    return {
        "id": MANIFEST_ID,
        "version": MANIFEST_VERSION,
        "name": settings.app_name,
        "description": (
            "Smart personalized recommendations for Movies and Series using your "
            "Trakt watch history and Google Gemini AI."
        ),
        "types": ["movie", "series"],
        "resources": ["catalog"],
        "idPrefixes": ["tt"],
        "catalogs": [definition.to_manifest_entry() for definition in CATALOGS],
        "behaviorHints": {
            "configurable": True,
            "configurationRequired": configuration_required,
        },
        "config": [
            {
                "key": key,
                "type": "text",
                "title": title,
                "required": configuration_required,
            }
            for key, title in CONFIG_FIELDS
        ],
    }
