"""Pytest configuration and test helpers."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest


# Ensure the application package is importable when running tests without an
# editable install.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from recommender.config import Settings  # noqa: E402
from recommender.models import UserConfig  # noqa: E402


def build_settings(**overrides: Any) -> Settings:
    """Return a settings object isolated from the local environment."""

    return Settings(_env_file=None, **overrides)  # type: ignore[arg-type]


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return build_settings()


@pytest.fixture
def user_config() -> UserConfig:
    return UserConfig(
        trakt_username="cinephile",
        trakt_client_id="client-id",
        tmdb_api_key="tmdb-key",
        gemini_api_key="gemini-key",
    )
