"""Repository-level integrity checks."""

from __future__ import annotations

import importlib
import re
from pathlib import Path

import pytest

CONFLICT_PATTERN = re.compile(r"^(<<<<<<<|=======|>>>>>>>)", re.MULTILINE)
SOURCE_SUFFIXES = {".py", ".toml", ".md", ".txt"}
IGNORED_PARTS = {".git", "__pycache__", ".mypy_cache", ".pytest_cache", ".venv"}
REPO_ROOT = Path(__file__).resolve().parents[1]


def _source_files() -> list[Path]:
    return [
        path
        for path in REPO_ROOT.rglob("*")
        if path.is_file()
        and path.suffix in SOURCE_SUFFIXES
        and not any(part in IGNORED_PARTS for part in path.parts)
    ]


def test_sources_have_no_merge_conflict_markers() -> None:
    offending = [
        path.relative_to(REPO_ROOT)
        for path in _source_files()
        if CONFLICT_PATTERN.search(path.read_text(encoding="utf-8", errors="ignore"))
    ]

    assert not offending, "Conflict markers left in: " + ", ".join(map(str, offending))


@pytest.mark.parametrize(
    "module_name",
    [
        "recommender.config",
        "recommender.cache",
        "recommender.catalogs",
        "recommender.manifest",
        "recommender.models",
        "recommender.web",
        "recommender.services.trakt",
        "recommender.services.gemini",
        "recommender.services.tmdb",
        "recommender.services.recommendations",
    ],
)
def test_package_modules_import(module_name: str) -> None:
    assert importlib.import_module(module_name) is not None


def test_entrypoint_targets_the_fastapi_app() -> None:
    pyproject = (REPO_ROOT / "pyproject.toml").read_text(encoding="utf-8")

    assert 'geminirecs = "geminirecs.__main__:main"' in pyproject
    assert callable(importlib.import_module("geminirecs.__main__").main)
