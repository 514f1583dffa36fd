"""Installable entry point for the Gemini Recommender addon server."""

from __future__ import annotations

from recommender.main import app, create_app

__all__ = ["app", "create_app"]
