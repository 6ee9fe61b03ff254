"""
Chat Notifier

Outbound chat messages and reactions. From the capture pipeline's point of
view every call is fire-and-forget: failures are logged, never raised.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger("brain.common.notifier")

TELEGRAM_API_BASE = "https://api.telegram.org"

# Telegram only accepts a fixed reaction set
REACTION_EMOJI_MAP = {
    "✅": "👍",
    "❌": "👎",
}

# Only infrastructure failures are pushed to the owner, not user errors
CRITICAL_ERROR_MARKERS = (
    "R2",
    "Gemini API",
    "TIMEOUT",
    "Worker error",
    "fetch failed",
    "GitHub sync",
    "Blob store",
)


class ChatNotifier(ABC):
    """Abstract outbound chat capability"""

    @abstractmethod
    async def send_text(self, chat_id: int, text: str, reply_to: Optional[int] = None) -> bool:
        pass

    @abstractmethod
    async def react(self, chat_id: int, message_id: int, emoji: str) -> None:
        pass

    async def send_chat_action(self, chat_id: int, action: str) -> None:
        """Optional typing indicator; no-op by default"""
        return None

    async def alert_on_error(self, context: str, error: BaseException) -> None:
        """Optional owner alert for infrastructure failures; no-op by default"""
        return None


class TelegramNotifier(ChatNotifier):
    """
    Telegram Bot API notifier.

    Usage:
        notifier = TelegramNotifier(bot_token="123:abc", alert_chat_id="42")
        await notifier.send_text(42, "hello")
    """

    def __init__(
        self,
        bot_token: str,
        alert_chat_id: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._bot_token = bot_token
        self._alert_chat_id = alert_chat_id
        self._timeout = timeout
        self._transport = transport

    async def _call(self, method: str, payload: Dict[str, Any]) -> bool:
        url = f"{TELEGRAM_API_BASE}/bot{self._bot_token}/{method}"
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout), transport=self._transport
            ) as client:
                response = await client.post(url, json=payload)
        except httpx.HTTPError as e:
            logger.warning("Telegram %s failed: %s", method, e)
            return False

        if response.is_success:
            return True
        logger.warning("Telegram %s failed: %s - %s", method, response.status_code, response.text)
        return False

    async def send_text(self, chat_id: int, text: str, reply_to: Optional[int] = None) -> bool:
        payload = {
            "chat_id": chat_id,
            "text": text,
            "parse_mode": "Markdown",
        }
        if reply_to is not None:
            payload["reply_to_message_id"] = reply_to
        return await self._call("sendMessage", payload)

    async def react(self, chat_id: int, message_id: int, emoji: str) -> None:
        mapped = REACTION_EMOJI_MAP.get(emoji, emoji)
        await self._call("setMessageReaction", {
            "chat_id": chat_id,
            "message_id": message_id,
            "reaction": [{"type": "emoji", "emoji": mapped}],
        })

    async def send_chat_action(self, chat_id: int, action: str) -> None:
        await self._call("sendChatAction", {"chat_id": chat_id, "action": action})

    async def alert_on_error(self, context: str, error: BaseException) -> None:
        """Push an infrastructure error to the bot owner (once, no retries)"""
        message = str(error)
        if not self._alert_chat_id:
            return
        if not any(marker in message for marker in CRITICAL_ERROR_MARKERS):
            return

        text = f"🚨 Bot error\n\nPath: {context}\nError: {message}"
        await self._call("sendMessage", {
            "chat_id": self._alert_chat_id,
            "text": text[:500],
        })
