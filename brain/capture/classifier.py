"""
Capture Classifier

Sends a capture to the LLM with the classification prompt and returns the
raw response text. Parsing and validation happen in the validator; this
module only guarantees "some text came back" or raises ClassifierError.
"""

import asyncio
import logging
from typing import Optional

from ..common.llm_client import LLMClient
from ..common.schemas.vault_config import VaultConfig
from .prompts import build_capture_prompt

logger = logging.getLogger("brain.capture.classifier")

# Low temperature keeps the JSON shape stable
CLASSIFY_MAX_TOKENS = 512
CLASSIFY_TEMPERATURE = 0.3
CLASSIFY_TIMEOUT = 30.0


class ClassifierError(RuntimeError):
    """Classifier unreachable, unconfigured, or returned nothing"""
    pass


class CaptureClassifier:
    """
    LLM-backed capture classifier.

    Usage:
        classifier = CaptureClassifier(LLMClient.from_config(config.llm))
        raw = await classifier.classify("met sarah from acme", vault_config)
    """

    def __init__(
        self,
        llm_client: Optional[LLMClient],
        max_tokens: int = CLASSIFY_MAX_TOKENS,
        temperature: float = CLASSIFY_TEMPERATURE,
        timeout: float = CLASSIFY_TIMEOUT,
    ):
        self._llm = llm_client
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._timeout = timeout

    @property
    def is_available(self) -> bool:
        return self._llm is not None and self._llm.is_available

    async def classify(self, text: str, config: VaultConfig) -> str:
        """
        Classify a capture.

        Args:
            text: Raw capture text
            config: Vault config (topic keywords are embedded in the prompt)

        Returns:
            Raw classifier response (expected to be JSON)

        Raises:
            ClassifierError: client unavailable, call failed, or empty response
        """
        if not self.is_available:
            raise ClassifierError("LLM classifier not configured")

        prompt = build_capture_prompt(text, config)
        try:
            # SDK calls block; keep the event loop free
            response = await asyncio.to_thread(
                self._llm.generate,
                prompt,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
                timeout=self._timeout,
            )
        except Exception as e:
            raise ClassifierError(f"{self._llm.provider} classifier call failed: {e}") from e

        if not response or not response.strip():
            raise ClassifierError(f"No response from {self._llm.provider} classifier")

        logger.debug("Classifier response: %s", response[:200])
        return response
