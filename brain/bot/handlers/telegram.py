"""
Telegram Handler

Handles Telegram Bot API webhook updates and converts them to Messages.
"""

import hmac
from typing import Optional, Dict, Any

from .base import BaseHandler, Message


class TelegramHandler(BaseHandler):
    """
    Handler for Telegram webhook updates.

    Processes:
    - message updates with text

    Ignores:
    - edited messages, channel posts, callbacks
    - messages without text (photos, stickers, ...)
    """

    def __init__(self, webhook_secret: str = "", allowed_user_id: str = ""):
        """
        Initialize Telegram handler.

        Args:
            webhook_secret: Value expected in X-Telegram-Bot-Api-Secret-Token
            allowed_user_id: Only this Telegram user may use the bot (empty = anyone)
        """
        super().__init__("telegram")
        self._webhook_secret = webhook_secret
        self._allowed_user_id = str(allowed_user_id or "")

    @staticmethod
    def chat_id_of(raw_data: Dict[str, Any]) -> Optional[int]:
        """Chat id of an update, if it carries a message"""
        message = raw_data.get("message") or {}
        return (message.get("chat") or {}).get("id")

    def parse_update(self, raw_data: Dict[str, Any]) -> Optional[Message]:
        """
        Parse Telegram update into Message.

        Args:
            raw_data: Raw Telegram update

        Returns:
            Message object or None if the update should be ignored
        """
        message = raw_data.get("message")
        if not isinstance(message, dict):
            return None

        text = message.get("text")
        if not text:
            return None

        chat_id = (message.get("chat") or {}).get("id")
        if chat_id is None:
            return None

        sender = message.get("from") or {}

        return Message(
            text=text,
            chat_id=chat_id,
            message_id=message.get("message_id"),
            user_id=sender.get("id"),
            source="telegram",
            timestamp=message.get("date"),
            is_bot=bool(sender.get("is_bot")),
            raw_data=message,
        )

    def verify_secret(self, secret_header: Optional[str]) -> bool:
        """
        Verify Telegram webhook secret token.

        Args:
            secret_header: X-Telegram-Bot-Api-Secret-Token header

        Returns:
            True if the secret matches (or none is configured)
        """
        if not self._webhook_secret:
            # Skip verification if no secret configured
            return True

        if not secret_header:
            return False

        return hmac.compare_digest(self._webhook_secret, secret_header)

    def is_authorized(self, message: Message) -> bool:
        """Check the sender against the allowed user id"""
        if not self._allowed_user_id:
            return True
        return str(message.user_id) == self._allowed_user_id
