"""
Retriever

Vault context loading and question answering for /ask.
"""

from .vault import VaultContext, load_vault_context
from .answerer import VaultAnswerer, AnswerResult, sanitize_query

__all__ = [
    "VaultContext",
    "load_vault_context",
    "VaultAnswerer",
    "AnswerResult",
    "sanitize_query",
]
