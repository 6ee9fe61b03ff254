"""
Vault Answerer

Answers free-form questions (/ask) from the aggregated vault context.
The whole unit of work (load + LLM call) must finish within 25 seconds.
"""

import asyncio
import logging
import re
import time
from dataclasses import dataclass
from typing import Optional

from ..common.blob_store import BlobStore
from ..common.config import VAULT_CONTEXT_KEY
from ..common.llm_client import LLMClient
from .vault import load_vault_context

logger = logging.getLogger("brain.retriever.answerer")

ASK_TIMEOUT_SECONDS = 25.0
ASK_MAX_TOKENS = 1024
ASK_TEMPERATURE = 0.7
MAX_QUERY_LENGTH = 1000

INJECTION_PATTERNS = [
    re.compile(r"ignore (all )?(previous |above |prior )?instructions", re.IGNORECASE),
    re.compile(r"disregard (all )?(previous |above |prior )?instructions", re.IGNORECASE),
    re.compile(r"forget (all )?(previous |above |prior )?instructions", re.IGNORECASE),
    re.compile(r"you are now", re.IGNORECASE),
    re.compile(r"new instructions:", re.IGNORECASE),
    re.compile(r"system prompt:", re.IGNORECASE),
]

ANSWER_PROMPT = """You are a helpful assistant with access to a personal knowledge vault.

Here is the vault content:

{vault_content}

---

Based on the vault content above, answer this question:
{query}

Be concise and specific. If you can't find relevant information in the vault, say so.
Cite which files you found the information in when relevant."""


class VaultEmptyError(RuntimeError):
    pass


def sanitize_query(query: str) -> str:
    """Replace instruction-override phrases with [removed], cap at 1000 chars"""
    sanitized = query or ""
    for pattern in INJECTION_PATTERNS:
        sanitized = pattern.sub("[removed]", sanitized)
    return sanitized[:MAX_QUERY_LENGTH]


@dataclass
class AnswerResult:
    """Reply text plus what the footer needs"""
    text: str
    elapsed: float
    timed_out: bool = False
    error: Optional[str] = None
    vault_size_kb: int = 0


class VaultAnswerer:
    """
    Question answering over the vault context.

    Usage:
        answerer = VaultAnswerer(store, LLMClient.from_config(config.llm))
        result = await answerer.answer("what did I note about RAG?")
    """

    def __init__(
        self,
        store: BlobStore,
        llm_client: Optional[LLMClient],
        context_key: str = VAULT_CONTEXT_KEY,
        timeout: float = ASK_TIMEOUT_SECONDS,
    ):
        self._store = store
        self._llm = llm_client
        self._context_key = context_key
        self._timeout = timeout

    async def _answer(self, query: str):
        context = await load_vault_context(self._store, self._context_key)
        if context.is_empty:
            raise VaultEmptyError("Vault empty - run sync first")
        if self._llm is None or not self._llm.is_available:
            raise RuntimeError("LLM not configured")

        prompt = ANSWER_PROMPT.format(
            vault_content=context.content,
            query=sanitize_query(query),
        )
        answer = await asyncio.to_thread(
            self._llm.generate,
            prompt,
            max_tokens=ASK_MAX_TOKENS,
            temperature=ASK_TEMPERATURE,
            timeout=self._timeout,
        )
        if not answer:
            raise RuntimeError("No response from LLM")
        return answer, context

    async def answer(self, query: str) -> AnswerResult:
        """Answer a question; errors and timeouts become reply text"""
        start = time.monotonic()
        try:
            answer, context = await asyncio.wait_for(self._answer(query), timeout=self._timeout)
        except asyncio.TimeoutError:
            elapsed = time.monotonic() - start
            logger.warning("Ask timed out after %.1fs", elapsed)
            return AnswerResult(
                text=f"⏱️ Query timed out after {elapsed:.1f}s. Try a simpler question.",
                elapsed=elapsed,
                timed_out=True,
                error="TIMEOUT",
            )
        except Exception as e:
            elapsed = time.monotonic() - start
            logger.error("Ask error: %s", e)
            return AnswerResult(
                text=f"❌ {e}\n\n_⚡ {elapsed:.1f}s_",
                elapsed=elapsed,
                error=str(e),
            )

        elapsed = time.monotonic() - start
        stale = ""
        age = context.sync_age_hours()
        if context.is_stale():
            stale = f" ⚠️ {age}h stale"
        return AnswerResult(
            text=f"{answer}\n\n_⚡ {elapsed:.1f}s · {context.size_kb}KB vault{stale}_",
            elapsed=elapsed,
            vault_size_kb=context.size_kb,
        )
