"""
Telegram Brain Schemas

Classification record, vault classification config, and note templates.
"""

from .classification import (
    Classification,
    CaptureType,
    TypeFields,
    PersonFields,
    ProjectFields,
    KnowledgeFields,
    ActionFields,
    CaptureFields,
    FIELDS_BY_TYPE,
    VALID_TYPES,
    parse_number,
)
from .vault_config import (
    VaultConfig,
    DEFAULT_VAULT_CONFIG,
    INBOX_FOLDER,
    merge_vault_config,
    parse_vault_config,
    load_vault_config,
)
from .templates import build_tags, render_note, NOTE_TEMPLATE

__all__ = [
    "Classification",
    "CaptureType",
    "TypeFields",
    "PersonFields",
    "ProjectFields",
    "KnowledgeFields",
    "ActionFields",
    "CaptureFields",
    "FIELDS_BY_TYPE",
    "VALID_TYPES",
    "parse_number",
    "VaultConfig",
    "DEFAULT_VAULT_CONFIG",
    "INBOX_FOLDER",
    "merge_vault_config",
    "parse_vault_config",
    "load_vault_config",
    "build_tags",
    "render_note",
    "NOTE_TEMPLATE",
]
