"""
Routing Policy

Pure functions mapping a Classification and the vault config to a
destination path and a user-feedback tier. Same inputs, same outputs.
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from ..common.schemas.classification import Classification
from ..common.schemas.vault_config import VaultConfig, INBOX_FOLDER


DEFAULT_TYPE_FOLDERS = {
    "person": "People",
    "project": "Projects",
    "knowledge": "Knowledge",
    "action": INBOX_FOLDER,
    "capture": INBOX_FOLDER,
}

MAX_FILENAME_TITLE = 50
TIMEPART_LENGTH = 19

_UNSAFE_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')
_WHITESPACE = re.compile(r"\s+")
_TIMESTAMP_SEPARATORS = re.compile(r"[:.]")


class FeedbackTier(str, Enum):
    """How loudly to acknowledge a routed capture"""
    SILENT_SUCCESS = "silent_success"  # reaction only
    CONFIRM = "confirm"                # reaction + short description
    INBOX_HINT = "inbox_hint"          # generic routing hint


def format_timestamp(moment: Optional[datetime] = None) -> str:
    """UTC ISO-8601 with milliseconds and Z suffix: 2026-01-20T12:00:00.000Z"""
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    iso = moment.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return iso.replace("+00:00", "Z")


def sanitize_title(title: str) -> str:
    """Strip unsafe characters, collapse whitespace, cap at 50 characters"""
    safe = _UNSAFE_FILENAME_CHARS.sub("", title)
    safe = _WHITESPACE.sub(" ", safe).strip()
    return safe[:MAX_FILENAME_TITLE].rstrip()


def timestamp_suffix(timestamp: str) -> str:
    """2026-01-20T12:00:00.000Z -> 2026-01-20T12-00-00"""
    return _TIMESTAMP_SEPARATORS.sub("-", timestamp)[:TIMEPART_LENGTH]


def sanitize_filename(title: str, timestamp: str) -> str:
    """Filename (no extension): '<safe title> - <timestamp suffix>'"""
    return f"{sanitize_title(title)} - {timestamp_suffix(timestamp)}"


def destination_folder(classification: Classification, config: VaultConfig) -> str:
    """Low confidence goes to the low-confidence folder, otherwise the type's folder"""
    if classification.confidence < config.medium_confidence:
        return config.folders.get("low_confidence") or INBOX_FOLDER

    capture_type = classification.type.value
    return config.folders.get(capture_type) or DEFAULT_TYPE_FOLDERS.get(capture_type, INBOX_FOLDER)


def route(classification: Classification, config: VaultConfig, timestamp: str) -> str:
    """
    Destination key for a capture note.

    Args:
        classification: Validated or fallback classification
        config: Vault config (folders, thresholds)
        timestamp: Capture timestamp (see format_timestamp)

    Returns:
        "<folder>/<safe title> - <timestamp suffix>.md"
    """
    folder = destination_folder(classification, config)
    return f"{folder}/{sanitize_filename(classification.title, timestamp)}.md"


def feedback_tier(classification: Classification, config: VaultConfig) -> FeedbackTier:
    """Pick the acknowledgment tier from the two confidence cut points"""
    if classification.confidence >= config.high_confidence:
        return FeedbackTier.SILENT_SUCCESS
    if classification.confidence >= config.medium_confidence:
        return FeedbackTier.CONFIRM
    return FeedbackTier.INBOX_HINT
