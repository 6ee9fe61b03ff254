"""
Telegram Brain Common Module

Shared infrastructure for the capture pipeline, the retriever and the bot.
"""

from .config import BrainConfig, load_config
from .llm_client import LLMClient
from .blob_store import BlobStore, BlobInfo, BlobStoreError, LocalBlobStore, MemoryBlobStore
from .notifier import ChatNotifier, TelegramNotifier

__all__ = [
    "BrainConfig",
    "load_config",
    "LLMClient",
    "BlobStore",
    "BlobInfo",
    "BlobStoreError",
    "LocalBlobStore",
    "MemoryBlobStore",
    "ChatNotifier",
    "TelegramNotifier",
]
