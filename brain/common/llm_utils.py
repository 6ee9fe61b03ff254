"""Shared utilities for parsing LLM responses."""

from __future__ import annotations

import json
from typing import Any, Optional


def strip_code_fences(raw: str) -> str:
    """Remove one leading and one trailing markdown code fence.

    Handles both ```json-tagged and bare ``` fences. Text without fences is
    returned trimmed.
    """
    cleaned = (raw or "").strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[len("```json"):]
    elif cleaned.startswith("```"):
        cleaned = cleaned[len("```"):]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-len("```")]
    return cleaned.strip()


def parse_llm_json(raw: str) -> Optional[Any]:
    """Parse JSON from an LLM response that may be wrapped in code fences.

    Returns the decoded value, or None when the text is not valid JSON.
    Prose around the JSON is not searched for braces.
    """
    if not raw:
        return None

    try:
        return json.loads(strip_code_fences(raw))
    except (json.JSONDecodeError, ValueError):
        return None
