"""
Command Dispatch

Routes an inbound Telegram message to a bot command or, for plain text,
to the capture pipeline.
"""

import logging
import re
from typing import List, Optional

from ..capture.pipeline import CapturePipeline
from ..capture.sync import GitHubSync
from ..common.blob_store import BlobInfo, BlobStore
from ..common.config import VAULT_CONTEXT_KEY
from ..common.notifier import ChatNotifier
from ..retriever.answerer import VaultAnswerer
from ..retriever.vault import load_vault_context
from .handlers import Message, TelegramHandler

logger = logging.getLogger("brain.bot.commands")

INBOX_PREFIX = "0-Inbox/"
RECENT_LIST_LIMIT = 10
RECENT_SHOWN = 5
PREVIEW_LENGTH = 60
STATS_INBOX_LIMIT = 100

INBOX_QUERY = "what needs attention in inbox? prioritize by age and importance"
SUMMARY_QUERY = "summarize today's captures concisely"

HELP_TEXT = """*Second Brain Bot*

📝 *Capture* - Just send any text
/ask <query> - Query your vault
/inbox - What needs attention in inbox
/summary - Summarize today's captures
/digest - Trigger morning digest
/digest evening - Trigger evening digest
/recent - Show recent captures
/stats - Vault statistics
/help - This message

_Tip: Send links, ideas, or notes - they're saved to your inbox for processing._"""

_FILENAME_TIME = re.compile(r"(\d{4}-\d{2}-\d{2})T(\d{2})-(\d{2})")


def note_preview(content: str) -> str:
    """First line that is not frontmatter, a heading/tag line, or blank"""
    lines = content.split("\n")
    if lines and lines[0].strip() == "---":
        try:
            end = lines.index("---", 1)
            lines = lines[end + 1:]
        except ValueError:
            pass

    for line in lines:
        if line.strip() and not line.startswith("#"):
            preview = line[:PREVIEW_LENGTH]
            return preview + "..." if len(preview) >= PREVIEW_LENGTH else preview
    return "(empty)"


def filename_date(key: str) -> str:
    """'... - 2026-01-20T12-00-00.md' -> '2026-01-20 12:00'"""
    match = _FILENAME_TIME.search(key.split("/")[-1])
    if not match:
        return "unknown"
    return f"{match.group(1)} {match.group(2)}:{match.group(3)}"


def _inbox_notes(listing: List[BlobInfo]) -> List[BlobInfo]:
    return [blob for blob in listing if blob.key.endswith(".md")]


class CommandDispatcher:
    """
    Routes messages to command handlers.

    Usage:
        dispatcher = CommandDispatcher(handler, notifier, store, pipeline, answerer, sync)
        await dispatcher.dispatch(message)
    """

    def __init__(
        self,
        handler: TelegramHandler,
        notifier: ChatNotifier,
        store: BlobStore,
        pipeline: CapturePipeline,
        answerer: VaultAnswerer,
        sync: Optional[GitHubSync] = None,
        model_name: str = "",
        context_key: str = VAULT_CONTEXT_KEY,
    ):
        self._handler = handler
        self._notifier = notifier
        self._store = store
        self._pipeline = pipeline
        self._answerer = answerer
        self._sync = sync
        self._model_name = model_name
        self._context_key = context_key

    async def dispatch(self, message: Message) -> None:
        """Handle one inbound message"""
        if not self._handler.should_process(message):
            logger.debug("No message text, skipping")
            return

        chat_id = message.chat_id
        text = message.text

        if not self._handler.is_authorized(message):
            logger.warning("Unauthorized sender: %s", message.user_id)
            await self._notifier.send_text(chat_id, "⛔ Unauthorized")
            return

        if text.startswith("/ask "):
            await self.handle_ask(chat_id, message.message_id, text[5:].strip())
        elif text in ("/help", "/start"):
            await self.handle_help(chat_id)
        elif text == "/recent":
            await self.handle_recent(chat_id)
        elif text == "/stats":
            await self.handle_stats(chat_id)
        elif text == "/health":
            await self._notifier.send_text(chat_id, "✅ Bot is running")
        elif text in ("/digest", "/digest morning", "/digest evening"):
            digest_type = "evening" if "evening" in text else "morning"
            await self.handle_digest(chat_id, digest_type)
        elif text == "/inbox":
            await self.handle_ask(chat_id, message.message_id, INBOX_QUERY)
        elif text == "/summary":
            await self.handle_ask(chat_id, message.message_id, SUMMARY_QUERY)
        elif text.startswith("/"):
            await self._notifier.send_text(chat_id, "Unknown command. Try /help")
        else:
            await self._pipeline.handle(chat_id, message.message_id, text)

    # =========================================================================
    # Commands
    # =========================================================================

    async def handle_help(self, chat_id: int) -> None:
        await self._notifier.send_text(chat_id, HELP_TEXT)

    async def handle_ask(self, chat_id: int, message_id: int, query: str) -> None:
        await self._notifier.send_chat_action(chat_id, "typing")
        result = await self._answerer.answer(query)
        reply_to = message_id if result.error is None else None
        await self._notifier.send_text(chat_id, result.text, reply_to=reply_to)

    async def handle_recent(self, chat_id: int) -> None:
        """Newest inbox captures with a one-line preview"""
        try:
            listing = _inbox_notes(await self._store.list(INBOX_PREFIX, limit=RECENT_LIST_LIMIT))
            if not listing:
                await self._notifier.send_text(chat_id, "_📭 Inbox empty_")
                return

            newest = sorted(listing, key=lambda blob: blob.uploaded, reverse=True)[:RECENT_SHOWN]

            response = "*📬 Recent Captures*\n\n"
            for blob in newest:
                content = await self._store.get(blob.key)
                if content is None:
                    continue
                response += f"• _{filename_date(blob.key)}_\n{note_preview(content)}\n\n"

            response += f"_{len(listing)} total in inbox_"
            await self._notifier.send_text(chat_id, response)
        except Exception as e:
            logger.error("Recent error: %s", e)
            await self._notifier.send_text(chat_id, f"❌ {e}")

    async def handle_stats(self, chat_id: int) -> None:
        """Vault context size, file count, sync age, inbox size, model"""
        try:
            context = await load_vault_context(self._store, self._context_key)
            vault_info = "Not synced"
            if not context.is_empty:
                sync_info = ""
                age = context.sync_age_hours()
                if age is not None:
                    stale = " ⚠️" if context.is_stale() else " ✓"
                    sync_info = f" ({age}h ago){stale}"
                vault_info = f"{context.size_kb}KB · {context.file_count} files{sync_info}"

            inbox = _inbox_notes(await self._store.list(INBOX_PREFIX, limit=STATS_INBOX_LIMIT))

            stats = (
                "*📊 Vault Stats*\n\n"
                f"📁 Context: {vault_info}\n"
                f"📬 Inbox: {len(inbox)} captures\n"
                f"🤖 Model: {self._model_name or 'not configured'}\n\n"
                "_Run the vault sync to update context_"
            )
            await self._notifier.send_text(chat_id, stats)
        except Exception as e:
            logger.error("Stats error: %s", e)
            await self._notifier.send_text(chat_id, f"❌ {e}")

    async def handle_digest(self, chat_id: int, digest_type: str) -> None:
        """Trigger the digest workflow in the vault repo"""
        if self._sync is None or not self._sync.enabled:
            await self._notifier.send_text(chat_id, "❌ GitHub sync not configured")
            return

        try:
            await self._notifier.send_text(chat_id, f"⏳ Triggering {digest_type} digest...")
            status = await self._sync.trigger_digest(digest_type)
            if status == 204:
                await self._notifier.send_text(
                    chat_id, f"✅ {digest_type} digest triggered - check Telegram in ~10s"
                )
            else:
                await self._notifier.send_text(chat_id, f"❌ Failed: {status}")
        except Exception as e:
            logger.error("Digest trigger error: %s", e)
            await self._notifier.send_text(chat_id, f"❌ {e}")
