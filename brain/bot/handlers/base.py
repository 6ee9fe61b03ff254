"""
Base Handler

A chat platform delivers updates in its own JSON shape; handlers turn them
into a Message the command dispatcher understands.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Dict, Any
from datetime import datetime, timezone


@dataclass
class Message:
    """Inbound chat message, independent of the platform it arrived on"""
    text: str
    chat_id: int
    message_id: int
    user_id: Optional[int]
    source: str  # "telegram"
    timestamp: Optional[int] = None  # unix seconds
    is_bot: bool = False
    raw_data: Optional[Dict[str, Any]] = None

    @property
    def datetime(self) -> Optional[datetime]:
        if self.timestamp is None:
            return None
        try:
            return datetime.fromtimestamp(float(self.timestamp), tz=timezone.utc)
        except (ValueError, TypeError, OverflowError):
            return None

    @property
    def is_valid(self) -> bool:
        """Non-blank text is the only thing the bot acts on"""
        return bool(self.text and self.text.strip())

    @property
    def is_command(self) -> bool:
        return self.text.startswith("/")


class BaseHandler(ABC):
    """
    Converts one platform's webhook updates into Messages.

    Subclasses implement parse_update and verify_secret; should_process
    drops blank and bot-authored messages for every platform.
    """

    def __init__(self, source_name: str):
        self.source_name = source_name

    @abstractmethod
    def parse_update(self, raw_data: Dict[str, Any]) -> Optional[Message]:
        """Message for an update, or None when the update carries nothing to handle"""
        pass

    @abstractmethod
    def verify_secret(self, secret_header: Optional[str]) -> bool:
        """True when the webhook request carries the configured shared secret"""
        pass

    def should_process(self, message: Message) -> bool:
        return message.is_valid and not message.is_bot
