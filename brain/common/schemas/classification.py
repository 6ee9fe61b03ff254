"""
Classification Schema

Structured result of categorizing a single capture. A Classification is built
once per capture, either from validated classifier output or by the fallback
generator, and is immutable afterwards.

The `fields` payload is typed per capture type:
    person    -> PersonFields(context, follow_ups)
    project   -> ProjectFields(status, next_action)
    knowledge -> KnowledgeFields(one_liner)
    action    -> ActionFields(due_date)
    capture   -> CaptureFields()
"""

import math
import re
from enum import Enum
from typing import Any, Dict, List, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ============================================================================
# Enums
# ============================================================================

class CaptureType(str, Enum):
    """Closed set of capture categories"""
    PERSON = "person"
    PROJECT = "project"
    KNOWLEDGE = "knowledge"
    ACTION = "action"
    CAPTURE = "capture"  # catch-all / uncertain


VALID_TYPES = tuple(t.value for t in CaptureType)


# ============================================================================
# Coercion helpers
# ============================================================================

_NUMBER_PREFIX = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def parse_number(value: Any) -> Optional[float]:
    """Parse a leading number the way a lenient float parser would.

    "0.8" -> 0.8, "0.75 (fairly sure)" -> 0.75, 1 -> 1.0.
    Integers beyond the float range -> +/-inf.
    Booleans, None, NaN and text without a numeric prefix -> None.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            # JSON integers can exceed the float range
            number = math.inf if value > 0 else -math.inf
    elif isinstance(value, str):
        match = _NUMBER_PREFIX.match(value)
        if not match:
            return None
        number = float(match.group(0))
    else:
        return None
    if math.isnan(number):
        return None
    return number


def _as_text(value: Any) -> Optional[str]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return None


def as_text_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    items = []
    for item in value:
        text = _as_text(item)
        if text:
            items.append(text)
    return items


# ============================================================================
# Per-type field payloads
# ============================================================================

class TypeFields(BaseModel):
    """Base for per-type auxiliary fields"""
    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_raw(cls, raw: Any) -> "TypeFields":
        """Coerce an untrusted mapping; unknown keys dropped, malformed values emptied"""
        if not isinstance(raw, dict):
            raw = {}
        values = {}
        for name, info in cls.model_fields.items():
            if info.annotation == List[str]:
                values[name] = as_text_list(raw.get(name))
            else:
                values[name] = _as_text(raw.get(name))
        return cls(**values)


class PersonFields(TypeFields):
    context: Optional[str] = None
    follow_ups: List[str] = Field(default_factory=list)


class ProjectFields(TypeFields):
    status: Optional[str] = None
    next_action: Optional[str] = None


class KnowledgeFields(TypeFields):
    one_liner: Optional[str] = None


class ActionFields(TypeFields):
    due_date: Optional[str] = None


class CaptureFields(TypeFields):
    pass


FIELDS_BY_TYPE: Dict[CaptureType, Type[TypeFields]] = {
    CaptureType.PERSON: PersonFields,
    CaptureType.PROJECT: ProjectFields,
    CaptureType.KNOWLEDGE: KnowledgeFields,
    CaptureType.ACTION: ActionFields,
    CaptureType.CAPTURE: CaptureFields,
}

AnyTypeFields = Union[PersonFields, ProjectFields, KnowledgeFields, ActionFields, CaptureFields]


# ============================================================================
# Classification
# ============================================================================

class Classification(BaseModel):
    """
    Classification of a capture.

    Invariants:
    - type is one of CaptureType
    - 0.0 <= confidence <= 1.0
    - title is non-empty
    - fields is the payload class for `type`
    """
    model_config = ConfigDict(frozen=True)

    type: CaptureType
    confidence: float = Field(ge=0.0, le=1.0)
    title: str = Field(min_length=1)
    topics: List[str] = Field(default_factory=list)
    fields: AnyTypeFields = Field(default_factory=CaptureFields)

    @model_validator(mode="before")
    @classmethod
    def _coerce_fields(cls, data: Any) -> Any:
        """Build the fields payload that matches `type` from a plain mapping"""
        if not isinstance(data, dict):
            return data
        fields = data.get("fields")
        if fields is not None and not isinstance(fields, dict):
            return data
        try:
            capture_type = CaptureType(data.get("type"))
        except ValueError:
            return data
        return {**data, "fields": FIELDS_BY_TYPE[capture_type].from_raw(fields or {})}

    @model_validator(mode="after")
    def _fields_match_type(self) -> "Classification":
        expected = FIELDS_BY_TYPE[self.type]
        if type(self.fields) is not expected:
            raise ValueError(
                f"fields for type '{self.type.value}' must be {expected.__name__}, "
                f"got {type(self.fields).__name__}"
            )
        return self
