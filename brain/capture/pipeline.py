"""
Capture Pipeline

Orchestrates one capture end to end:

1. Load vault config (defaults when missing)
2. Classify with the LLM
3. Validate the classifier output
4. Route + render the note
5. Persist to the blob store
6. Trigger GitHub sync (background, not awaited)
7. Acknowledge the user by feedback tier
8. Append to the audit log (always)

Any failure in steps 2-5 switches to the fallback branch: a capture-type
note with confidence 0 is routed and rendered the same way and written to
the low-confidence folder, and the user is told the error.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Set, Tuple

from ..common.blob_store import BlobStore
from ..common.config import VAULT_CONTEXT_KEY
from ..common.notifier import ChatNotifier
from ..common.schemas.classification import Classification
from ..common.schemas.templates import render_note
from ..common.schemas.vault_config import DEFAULT_VAULT_CONFIG, VaultConfig, load_vault_config
from .audit import AuditEntry, AuditLog
from .classifier import CaptureClassifier
from .fallback import generate_fallback
from .router import FeedbackTier, feedback_tier, format_timestamp, route
from .sync import GitHubSync
from .validator import parse_classifier_response

logger = logging.getLogger("brain.capture.pipeline")

ACK_REACTION = "👍"
INBOX_HINT_TEXT = "📥 Inbox. Prefix with type to route."


class InvalidClassificationError(ValueError):
    """Classifier output could not be parsed or validated"""
    pass


@dataclass
class CaptureResult:
    """Outcome of one pipeline run (mirrors the audit entry)"""
    classification: Optional[Classification]
    destination: Optional[str]
    intended_destination: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    error: Optional[str] = None
    timestamp: str = ""

    @property
    def used_fallback(self) -> bool:
        return self.error is not None


def _error_text(error: BaseException) -> str:
    return str(error) or type(error).__name__


class CapturePipeline:
    """
    Capture classification and routing pipeline.

    Usage:
        pipeline = CapturePipeline(store, classifier, notifier, sync=sync)
        result = await pipeline.handle(chat_id=42, message_id=7, text="met sarah")
    """

    def __init__(
        self,
        store: BlobStore,
        classifier: CaptureClassifier,
        notifier: ChatNotifier,
        sync: Optional[GitHubSync] = None,
        audit: Optional[AuditLog] = None,
        vault_context_key: str = VAULT_CONTEXT_KEY,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._store = store
        self._classifier = classifier
        self._notifier = notifier
        self._sync = sync
        self._audit = audit or AuditLog(store)
        self._vault_context_key = vault_context_key
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._background_tasks: Set[asyncio.Task] = set()

    async def handle(self, chat_id: int, message_id: int, text: str) -> CaptureResult:
        """
        Run the pipeline for one capture. Never raises.

        Args:
            chat_id: Telegram chat to acknowledge in
            message_id: Telegram message to react to
            text: Raw capture text

        Returns:
            CaptureResult (also written to the audit log)
        """
        logger.info("Capture: chat=%s msg=%s text=%s", chat_id, message_id, text[:50])

        timestamp = format_timestamp(self._clock())
        config = DEFAULT_VAULT_CONFIG
        result = CaptureResult(classification=None, destination=None, timestamp=timestamp)

        try:
            config = await load_vault_config(self._store, self._vault_context_key)

            raw = await self._classifier.classify(text, config)
            classification = parse_classifier_response(raw)
            if classification is None:
                raise InvalidClassificationError("Invalid classifier response")

            result.intended_destination = route(classification, config, timestamp)
            document, tags = render_note(classification, text, timestamp, config)

            logger.info(
                "Routing %s (%.2f) -> %s",
                classification.type.value, classification.confidence, result.intended_destination,
            )
            await self._store.put(result.intended_destination, document, content_type="text/markdown")

            result.classification = classification
            result.destination = result.intended_destination
            result.tags = tags

        except Exception as e:
            result.error = _error_text(e)
            logger.warning("Capture classification failed, using fallback: %s", result.error)
            await self._run_fallback(chat_id, text, config, result)

        else:
            self._spawn_sync(result.destination)
            await self._acknowledge(chat_id, message_id, result.classification, config)

        await self._audit.append(AuditEntry(
            telegram_msg_id=message_id,
            raw=text,
            classification=result.classification,
            destination=result.destination,
            intended_destination=result.intended_destination,
            tags=result.tags,
            error=result.error,
        ))
        return result

    async def _run_fallback(
        self,
        chat_id: int,
        text: str,
        config: VaultConfig,
        result: CaptureResult,
    ) -> None:
        """Write the fallback note and tell the user; fills in `result`"""
        classification = generate_fallback(text)
        result.classification = classification

        try:
            destination, document, tags = self._render(classification, text, result.timestamp, config)
            result.tags = tags
            await self._store.put(destination, document, content_type="text/markdown")
        except Exception as e:
            logger.error("Fallback capture write failed: %s", e)
            result.error = f"{result.error}; fallback failed: {_error_text(e)}"
            await self._send(chat_id, f"❌ Capture failed: {_error_text(e)}")
            return

        result.destination = destination
        logger.info("Fallback capture written to %s", destination)
        await self._send(chat_id, f"⚠️ Classified with fallback: {result.error}")

    @staticmethod
    def _render(
        classification: Classification,
        text: str,
        timestamp: str,
        config: VaultConfig,
    ) -> Tuple[str, str, List[str]]:
        destination = route(classification, config, timestamp)
        document, tags = render_note(classification, text, timestamp, config)
        return destination, document, tags

    async def _acknowledge(
        self,
        chat_id: int,
        message_id: int,
        classification: Classification,
        config: VaultConfig,
    ) -> None:
        tier = feedback_tier(classification, config)
        if tier == FeedbackTier.SILENT_SUCCESS:
            await self._react(chat_id, message_id)
        elif tier == FeedbackTier.CONFIRM:
            await self._react(chat_id, message_id)
            await self._send(chat_id, f'📝 {classification.type.value}: "{classification.title}"')
        else:
            await self._send(chat_id, INBOX_HINT_TEXT)

    async def _send(self, chat_id: int, text: str) -> None:
        try:
            await self._notifier.send_text(chat_id, text)
        except Exception as e:
            logger.warning("Notification failed: %s", e)

    async def _react(self, chat_id: int, message_id: int) -> None:
        try:
            await self._notifier.react(chat_id, message_id, ACK_REACTION)
        except Exception as e:
            logger.warning("Reaction failed: %s", e)

    # =========================================================================
    # Background sync
    # =========================================================================

    def _spawn_sync(self, destination: str) -> None:
        """Fire-and-forget GitHub notification for a written note"""
        if self._sync is None:
            return
        filename = destination.split("/")[-1]
        task = asyncio.create_task(self._sync_note(filename))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _sync_note(self, filename: str) -> None:
        try:
            await self._sync.notify(filename)
        except Exception as e:
            logger.warning("GitHub notify failed: %s", e)
            try:
                await self._notifier.alert_on_error("notifyGitHub", e)
            except Exception as alert_error:
                logger.warning("Error alert failed: %s", alert_error)

    @property
    def pending_tasks(self) -> int:
        return len(self._background_tasks)

    async def drain(self) -> None:
        """Wait for background sync tasks (shutdown, tests)"""
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)
