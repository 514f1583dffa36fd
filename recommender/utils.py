"""Utility helpers for the recommender service."""

from __future__ import annotations

import json
import re
from typing import Any


CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```\s*$", re.IGNORECASE)
BARE_ARRAY_RE = re.compile(r"\[.*\]", re.DOTALL)
BARE_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


def strip_code_fences(content: str) -> str:
    """Remove the Markdown fences models like to wrap JSON in."""

    return CODE_FENCE_RE.sub("", content.strip()).strip()


def extract_json_list(content: str) -> list[Any]:
    """Extract the list of entries from a model response.

    A bare JSON array is preferred; an object carrying an ``items`` or
    ``recommendations`` array is accepted as well.
    """

    cleaned = strip_code_fences(content)
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError:
        match = BARE_ARRAY_RE.search(cleaned) or BARE_OBJECT_RE.search(cleaned)
        if not match:
            raise ValueError("No JSON payload found in response") from None
        try:
            payload = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            raise ValueError("Invalid JSON payload produced by the model") from exc

    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ("items", "recommendations"):
            candidate = payload.get(key)
            if isinstance(candidate, list):
                return candidate
    raise ValueError("Model response did not contain a JSON array")


def normalize_title(value: str) -> str:
    """Return the comparison form of a title used for deny lists."""

    return value.strip().lower()
