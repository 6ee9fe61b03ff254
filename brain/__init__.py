"""
Telegram Brain

Personal second-brain bot: Telegram captures are classified by an LLM and filed
as markdown notes in a vault, with a query interface over the aggregated vault.

Philosophy:
- Every capture is acknowledged, even when classification fails
- Every capture run leaves exactly one audit entry
- Notes are plain markdown, readable without the bot
- No hardcoded personal data: all customization comes from the vault config

Usage:
    from brain.common import load_config, LLMClient, LocalBlobStore
    from brain.common.schemas import Classification, load_vault_config
    from brain.capture import CapturePipeline, CaptureClassifier, AuditLog
    from brain.retriever import VaultAnswerer
"""

__version__ = "0.1.0"
