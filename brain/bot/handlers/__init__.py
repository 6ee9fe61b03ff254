"""
Platform Handlers

Each handler converts platform-specific webhook updates to a common Message format.

Available Handlers:
- TelegramHandler: Telegram Bot API webhook updates
"""

from .base import BaseHandler, Message
from .telegram import TelegramHandler

__all__ = [
    "BaseHandler",
    "Message",
    "TelegramHandler",
]
