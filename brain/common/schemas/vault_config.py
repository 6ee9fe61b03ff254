"""
Vault Classification Config

Classification settings live in the vault itself (_vault_context.md) so the
bot carries no personal data. Four sections, each merged key by key over the
built-in defaults:

    ### Folders
    person_folder: People

    ### Topic Keywords
    genai: AI, LLM, RAG

    ### Type Tags
    person: #person

    ### Confidence Thresholds
    high_confidence: 0.7
    medium_confidence: 0.5
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from .classification import parse_number
from ..config import VAULT_CONTEXT_KEY

logger = logging.getLogger("brain.common.vault_config")

INBOX_FOLDER = "0-Inbox"

# Section header -> VaultConfig attribute
SECTION_ATTRS = {
    "folders": "folders",
    "topic_keywords": "topic_keywords",
    "type_tags": "type_tags",
    "confidence_thresholds": "thresholds",
}


def _frozen(mapping: Optional[Mapping] = None) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class VaultConfig:
    """Read-only classification config; sections may be partial"""
    folders: Mapping[str, str] = field(default_factory=_frozen)
    topic_keywords: Mapping[str, Tuple[str, ...]] = field(default_factory=_frozen)
    type_tags: Mapping[str, str] = field(default_factory=_frozen)
    thresholds: Mapping[str, float] = field(default_factory=_frozen)

    @property
    def high_confidence(self) -> float:
        return self.thresholds.get("high_confidence", 0.7)

    @property
    def medium_confidence(self) -> float:
        return self.thresholds.get("medium_confidence", 0.5)


DEFAULT_VAULT_CONFIG = VaultConfig(
    folders=_frozen({
        "person": "People",
        "project": "Projects",
        "knowledge": "Knowledge",
        "action": INBOX_FOLDER,
        "capture": INBOX_FOLDER,
        "low_confidence": INBOX_FOLDER,
    }),
    topic_keywords=_frozen(),
    type_tags=_frozen({
        "person": "#person",
        "project": "#project",
        "knowledge": "#knowledge",
        "action": "#action",
        "capture": "#capture",
        "telegram": "#telegram",
        "needs_review": "#needs-review",
    }),
    thresholds=_frozen({
        "high_confidence": 0.7,
        "medium_confidence": 0.5,
    }),
)


def merge_vault_config(defaults: VaultConfig, overrides: VaultConfig) -> VaultConfig:
    """Merge overrides over defaults section by section, key by key"""
    return VaultConfig(
        folders=_frozen({**defaults.folders, **overrides.folders}),
        topic_keywords=_frozen({**defaults.topic_keywords, **overrides.topic_keywords}),
        type_tags=_frozen({**defaults.type_tags, **overrides.type_tags}),
        thresholds=_frozen({**defaults.thresholds, **overrides.thresholds}),
    )


def parse_vault_config(content: str) -> VaultConfig:
    """
    Parse the markdown config sections into a partial VaultConfig.

    Unknown sections and malformed lines are ignored. A level-2 heading ends
    the current section, so note bodies aggregated later in the same file are
    never read as settings.
    """
    sections = {attr: {} for attr in SECTION_ATTRS.values()}
    current = None

    for line in content.split("\n"):
        trimmed = line.strip()

        if trimmed.startswith("### "):
            current = SECTION_ATTRS.get(trimmed[4:].strip().lower().replace(" ", "_"))
            continue

        # "## File: ..." starts an aggregated note body
        if trimmed.startswith("## "):
            current = None
            continue

        # Skip blanks and comments
        if not trimmed or trimmed.startswith("#"):
            continue

        if current is None or ":" not in trimmed:
            continue

        key, value = trimmed.split(":", 1)
        key, value = key.strip(), value.strip()
        if not key or not value:
            continue

        if current == "folders":
            sections["folders"][key.replace("_folder", "")] = value
        elif current == "topic_keywords":
            sections["topic_keywords"][key] = tuple(
                kw.strip().lower() for kw in value.split(",") if kw.strip()
            )
        elif current == "type_tags":
            sections["type_tags"][key] = value
        elif current == "thresholds":
            number = parse_number(value)
            if number is not None:
                sections["thresholds"][key] = number

    return VaultConfig(**{attr: _frozen(values) for attr, values in sections.items()})


async def load_vault_config(store, key: str = VAULT_CONTEXT_KEY) -> VaultConfig:
    """Load vault config from the blob store, merged over defaults.

    A missing or unreadable config is not an error: defaults are returned.
    """
    try:
        content = await store.get(key)
    except Exception as e:
        logger.warning("Vault config unreadable, using defaults: %s", e)
        return DEFAULT_VAULT_CONFIG

    if not content:
        return DEFAULT_VAULT_CONFIG

    try:
        parsed = parse_vault_config(content)
    except Exception as e:
        logger.warning("Vault config unparseable, using defaults: %s", e)
        return DEFAULT_VAULT_CONFIG
    return merge_vault_config(DEFAULT_VAULT_CONFIG, parsed)
