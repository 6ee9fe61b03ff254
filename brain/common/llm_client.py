"""
Provider-agnostic LLM client for Telegram Brain.

Capture classification and vault Q&A share one blocking text-generation call
over Google Gemini, Anthropic or OpenAI. Callers on the event loop run it in a
worker thread.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger("brain.common.llm_client")

SUPPORTED_PROVIDERS = ("google", "anthropic", "openai")

PACKAGE_NAMES = {
    "google": "google-generativeai",
    "anthropic": "anthropic",
    "openai": "openai",
}


class LLMClient:
    """
    One text-generation interface across LLM providers.

    Usage:
        client = LLMClient.from_config(config.llm)
        if client.is_available:
            text = client.generate(prompt, max_tokens=512, temperature=0.3)
    """

    def __init__(
        self,
        provider: str = "google",
        model: str = "",
        anthropic_api_key: Optional[str] = None,
        openai_api_key: Optional[str] = None,
        google_api_key: Optional[str] = None,
    ) -> None:
        self.provider = (provider or "google").lower()
        self.model = model
        self._client: Any = None
        self._google_models: Dict[str, Any] = {}

        if self.provider not in SUPPORTED_PROVIDERS:
            logger.warning("Unsupported LLM provider: %s", self.provider)
            return

        api_key = {
            "google": google_api_key,
            "anthropic": anthropic_api_key,
            "openai": openai_api_key,
        }[self.provider]
        if not api_key:
            logger.info("%s API key not provided, LLM client unavailable", self.provider)
            return

        connect = getattr(self, f"_connect_{self.provider}")
        try:
            self._client = connect(api_key)
        except ImportError:
            logger.warning("%s package not installed", PACKAGE_NAMES[self.provider])
        except Exception as e:
            logger.warning("Failed to initialize %s client: %s", self.provider, e)

    @classmethod
    def from_config(cls, llm_config) -> "LLMClient":
        """Build a client for the active provider of an LLMConfig"""
        return cls(
            provider=llm_config.provider,
            model=llm_config.model,
            anthropic_api_key=llm_config.anthropic_api_key or None,
            openai_api_key=llm_config.openai_api_key or None,
            google_api_key=llm_config.google_api_key or None,
        )

    @property
    def is_available(self) -> bool:
        return self._client is not None

    # =========================================================================
    # Provider setup
    # =========================================================================

    @staticmethod
    def _connect_google(api_key: str):
        import google.generativeai as genai

        genai.configure(api_key=api_key)
        # genai is configured globally; models are built per system prompt
        return genai

    @staticmethod
    def _connect_anthropic(api_key: str):
        import anthropic

        return anthropic.Anthropic(api_key=api_key)

    @staticmethod
    def _connect_openai(api_key: str):
        from openai import OpenAI

        return OpenAI(api_key=api_key)

    # =========================================================================
    # Generation
    # =========================================================================

    def generate(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int = 512,
        temperature: Optional[float] = None,
        timeout: float = 30.0,
    ) -> str:
        """
        Generate a completion for a single user prompt.

        Args:
            prompt: User prompt
            system: Optional system instruction
            max_tokens: Output token cap
            temperature: Sampling temperature (provider default when None)
            timeout: Request timeout in seconds

        Returns:
            Stripped response text ("" when the provider returns nothing)

        Raises:
            RuntimeError: Client not available
        """
        if not self.is_available:
            raise RuntimeError("LLM client is not available")

        generate = getattr(self, f"_generate_{self.provider}")
        return generate(prompt, system, max_tokens, temperature, timeout)

    def _google_model(self, system: Optional[str]):
        cache_key = hashlib.md5((system or "").encode()).hexdigest()
        model = self._google_models.get(cache_key)
        if model is None:
            options = {"model_name": self.model}
            if system:
                options["system_instruction"] = system
            model = self._client.GenerativeModel(**options)
            self._google_models[cache_key] = model
        return model

    def _generate_google(self, prompt, system, max_tokens, temperature, timeout) -> str:
        generation_config = {"max_output_tokens": max_tokens}
        if temperature is not None:
            generation_config["temperature"] = temperature

        response = self._google_model(system).generate_content(
            prompt,
            generation_config=generation_config,
            request_options={"timeout": timeout},
        )
        return (response.text or "").strip()

    def _generate_anthropic(self, prompt, system, max_tokens, temperature, timeout) -> str:
        request = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
            "timeout": timeout,
        }
        if system:
            request["system"] = system
        if temperature is not None:
            request["temperature"] = temperature

        response = self._client.messages.create(**request)
        return response.content[0].text.strip()

    def _generate_openai(self, prompt, system, max_tokens, temperature, timeout) -> str:
        messages = [{"role": "system", "content": system}] if system else []
        messages.append({"role": "user", "content": prompt})

        request = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": messages,
            "timeout": timeout,
        }
        if temperature is not None:
            request["temperature"] = temperature

        response = self._client.chat.completions.create(**request)
        return (response.choices[0].message.content or "").strip()
