"""
Classification Validator

Turns untrusted classifier output into a Classification, or None when the
output cannot be used (the caller then falls back).
"""

import logging
from typing import Any, Optional

from ..common.llm_utils import parse_llm_json
from ..common.schemas.classification import (
    Classification,
    CaptureType,
    VALID_TYPES,
    as_text_list,
    parse_number,
)

logger = logging.getLogger("brain.capture.validator")

DEFAULT_CONFIDENCE = 0.5
DEFAULT_TITLE = "Untitled Capture"


def _normalize_confidence(value: Any) -> float:
    number = parse_number(value)
    if number is None:
        number = DEFAULT_CONFIDENCE
    return max(0.0, min(1.0, number))


def _normalize_title(value: Any) -> str:
    if isinstance(value, bool) or value is None:
        return DEFAULT_TITLE
    title = str(value).strip()
    return title or DEFAULT_TITLE


def validate_classification(data: Any) -> Optional[Classification]:
    """
    Validate and normalize a decoded classification payload.

    Rejects (None) when the payload is not an object or `type` is missing or
    unknown. Otherwise:
    - confidence: numeric parse, 0.5 when unparseable, clamped to [0, 1]
    - title: "Untitled Capture" when missing or empty
    - topics: text and number items only, [] when not a list
    - fields: coerced into the payload for `type`; {} when not an object
    """
    if not isinstance(data, dict):
        return None

    capture_type = data.get("type")
    if not isinstance(capture_type, str) or capture_type not in VALID_TYPES:
        return None

    fields = data.get("fields")
    if not isinstance(fields, dict):
        fields = {}

    return Classification(
        type=CaptureType(capture_type),
        confidence=_normalize_confidence(data.get("confidence")),
        title=_normalize_title(data.get("title")),
        topics=as_text_list(data.get("topics")),
        fields=fields,
    )


def parse_classifier_response(raw: str) -> Optional[Classification]:
    """Strip code fences, parse JSON, validate. None means 'use fallback'."""
    data = parse_llm_json(raw)
    if data is None:
        logger.warning("Classifier returned non-JSON output: %s", (raw or "")[:200])
        return None

    classification = validate_classification(data)
    if classification is None:
        logger.warning("Classifier output failed validation: %s", str(data)[:200])
    return classification
