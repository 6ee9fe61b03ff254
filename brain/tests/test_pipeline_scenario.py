"""
Capture Pipeline Scenario Tests

Runs complete captures through CapturePipeline with an in-memory vault,
a scripted LLM, and a recording notifier:

- A: confident person capture -> People/, reaction only
- B: medium-confidence project -> Projects/, reaction + confirmation
- C: uncertain capture -> inbox, #needs-review, routing hint
- D: classifier returns garbage -> fallback note in inbox, error audited
- E: fenced JSON response -> parsed normally
- F: audit log keeps earlier entries intact

Plus the failure paths: classifier down, note write failing, total write
failure, audit failure, sync failure, and notifier failure.
"""

import json
import pytest
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock

from brain.capture.audit import AuditLog
from brain.capture.classifier import CaptureClassifier
from brain.capture.pipeline import CapturePipeline, INBOX_HINT_TEXT
from brain.capture.sync import GitHubSync, GitHubSyncError
from brain.common.blob_store import BlobStoreError, MemoryBlobStore
from brain.common.config import CAPTURE_LOG_KEY, VAULT_CONTEXT_KEY
from brain.common.notifier import ChatNotifier

CHAT_ID = 42
MESSAGE_ID = 7
NOW = datetime(2026, 1, 20, 12, 0, 0, tzinfo=timezone.utc)
TIMEPART = "2026-01-20T12-00-00"


# ============================================================================
# Test doubles
# ============================================================================

class RecordingNotifier(ChatNotifier):
    """Records every outbound message and reaction"""

    def __init__(self):
        self.texts: List[Tuple[int, str]] = []
        self.reactions: List[Tuple[int, int, str]] = []
        self.alerts: List[Tuple[str, str]] = []

    async def send_text(self, chat_id: int, text: str, reply_to: Optional[int] = None) -> bool:
        self.texts.append((chat_id, text))
        return True

    async def react(self, chat_id: int, message_id: int, emoji: str) -> None:
        self.reactions.append((chat_id, message_id, emoji))

    async def alert_on_error(self, context: str, error: BaseException) -> None:
        self.alerts.append((context, str(error)))


class FailingStore(MemoryBlobStore):
    """Memory store whose puts fail for keys matching a predicate"""

    def __init__(self, fail_when, initial=None):
        super().__init__(initial)
        self._fail_when = fail_when

    async def put(self, key, content, content_type="text/markdown"):
        if self._fail_when(key):
            raise BlobStoreError(f"Blob store write failed for {key}")
        await super().put(key, content, content_type)


def scripted_llm(response=None, side_effect=None):
    llm = MagicMock()
    llm.is_available = True
    llm.provider = "google"
    llm.generate.return_value = response
    if side_effect is not None:
        llm.generate.side_effect = side_effect
    return llm


def classifier_json(**payload) -> str:
    return json.dumps(payload)


def make_pipeline(response=None, store=None, notifier=None, sync=None, llm=None):
    store = store if store is not None else MemoryBlobStore()
    notifier = notifier or RecordingNotifier()
    classifier = CaptureClassifier(llm if llm is not None else scripted_llm(response))
    pipeline = CapturePipeline(
        store=store,
        classifier=classifier,
        notifier=notifier,
        sync=sync,
        clock=lambda: NOW,
    )
    return pipeline, store, notifier


async def audit_entries(store) -> List[dict]:
    content = await store.get(CAPTURE_LOG_KEY)
    return [json.loads(line) for line in content.splitlines() if line]


def note_keys(store) -> List[str]:
    return [key for key in store.keys() if key.endswith(".md") and key != VAULT_CONTEXT_KEY]


# ============================================================================
# Scenarios
# ============================================================================

class TestScenarioA:
    """Confident person capture"""

    @pytest.mark.asyncio
    async def test_routes_to_people_with_reaction_only(self):
        pipeline, store, notifier = make_pipeline(classifier_json(
            type="person", confidence=0.85, title="Sarah - Acme Corp",
            topics=[], fields={"context": "VP Eng at Acme", "follow_ups": ["Send deck"]},
        ))

        result = await pipeline.handle(CHAT_ID, MESSAGE_ID, "Met Sarah from Acme Corp, VP Eng")

        assert result.destination == f"People/Sarah - Acme Corp - {TIMEPART}.md"
        assert result.destination.startswith("People/")
        assert result.error is None
        assert not result.used_fallback
        assert notifier.reactions == [(CHAT_ID, MESSAGE_ID, "👍")]
        assert notifier.texts == []

        note = await store.get(result.destination)
        assert "type: person\n" in note
        assert "**Context**: VP Eng at Acme" in note
        assert "- [ ] Send deck" in note
        assert "Met Sarah from Acme Corp, VP Eng" in note

    @pytest.mark.asyncio
    async def test_audit_entry(self):
        pipeline, store, _ = make_pipeline(classifier_json(
            type="person", confidence=0.85, title="Sarah - Acme Corp",
        ))
        result = await pipeline.handle(CHAT_ID, MESSAGE_ID, "Met Sarah")

        [entry] = await audit_entries(store)
        assert entry["telegram_msg_id"] == MESSAGE_ID
        assert entry["raw"] == "Met Sarah"
        assert entry["classification"]["type"] == "person"
        assert entry["destination"] == result.destination
        assert entry["intended_destination"] == result.destination
        assert entry["tags"] == ["#person", "#telegram"]
        assert entry["error"] is None
        assert entry["ts"].endswith("Z")


class TestScenarioB:
    """Medium-confidence project"""

    @pytest.mark.asyncio
    async def test_routes_to_projects_with_confirmation(self):
        pipeline, store, notifier = make_pipeline(classifier_json(
            type="project", confidence=0.6, title="Website Redesign",
            fields={"status": "active", "next_action": "Draft wireframes"},
        ))

        result = await pipeline.handle(CHAT_ID, MESSAGE_ID, "website redesign kicking off")

        assert result.destination.startswith("Projects/")
        assert notifier.reactions == [(CHAT_ID, MESSAGE_ID, "👍")]
        assert notifier.texts == [(CHAT_ID, '📝 project: "Website Redesign"')]
        assert "**Next action**: Draft wireframes" in await store.get(result.destination)


class TestScenarioC:
    """Uncertain capture"""

    @pytest.mark.asyncio
    async def test_inbox_with_needs_review(self):
        pipeline, store, notifier = make_pipeline(classifier_json(
            type="capture", confidence=0.3, title="Random thought",
        ))

        result = await pipeline.handle(CHAT_ID, MESSAGE_ID, "hmm something about clouds")

        assert result.destination.startswith("0-Inbox/")
        assert "#needs-review" in result.tags
        assert notifier.reactions == []
        assert notifier.texts == [(CHAT_ID, INBOX_HINT_TEXT)]

    @pytest.mark.asyncio
    async def test_low_confidence_typed_capture_goes_to_inbox(self):
        pipeline, _, notifier = make_pipeline(classifier_json(
            type="knowledge", confidence=0.2, title="Maybe RAG",
        ))
        result = await pipeline.handle(CHAT_ID, MESSAGE_ID, "rag?")
        assert result.destination.startswith("0-Inbox/")
        assert "#needs-review" not in result.tags

    @pytest.mark.asyncio
    async def test_configured_low_confidence_folder(self):
        store = MemoryBlobStore({
            VAULT_CONTEXT_KEY: "### Folders\nlow_confidence_folder: Triage\n",
        })
        pipeline, _, _ = make_pipeline(
            classifier_json(type="capture", confidence=0.3, title="Thought"), store=store,
        )
        result = await pipeline.handle(CHAT_ID, MESSAGE_ID, "thought")
        assert result.destination.startswith("Triage/")


class TestScenarioD:
    """Classifier returns garbage"""

    @pytest.mark.asyncio
    async def test_fallback_note_and_error(self):
        pipeline, store, notifier = make_pipeline("not valid json at all")

        result = await pipeline.handle(CHAT_ID, MESSAGE_ID, "call the dentist about the appointment tomorrow")

        assert result.used_fallback
        assert result.classification.type.value == "capture"
        assert result.classification.confidence == 0.0
        assert result.classification.title == "Capture - call the dentist about the"
        assert result.destination == f"0-Inbox/Capture - call the dentist about the - {TIMEPART}.md"
        assert result.intended_destination is None

        note = await store.get(result.destination)
        assert "#needs-review" in note
        assert "call the dentist about the appointment tomorrow" in note

        assert notifier.reactions == []
        assert notifier.texts == [
            (CHAT_ID, "⚠️ Classified with fallback: Invalid classifier response"),
        ]

        [entry] = await audit_entries(store)
        assert entry["error"] == "Invalid classifier response"
        assert entry["classification"]["type"] == "capture"
        assert entry["classification"]["confidence"] == 0
        assert entry["destination"] == result.destination
        assert entry["intended_destination"] is None

    @pytest.mark.asyncio
    async def test_unknown_type_uses_fallback(self):
        pipeline, _, _ = make_pipeline(classifier_json(type="meeting", confidence=0.99, title="Standup"))
        result = await pipeline.handle(CHAT_ID, MESSAGE_ID, "standup at 10")
        assert result.classification.type.value == "capture"
        assert result.classification.confidence == 0.0


class TestScenarioE:
    """Fenced JSON"""

    @pytest.mark.asyncio
    async def test_fenced_response_parsed(self):
        raw = "```json\n" + classifier_json(
            type="knowledge", confidence=0.9, title="RAG beats fine-tuning",
            topics=["genai"], fields={"one_liner": "Retrieval first"},
        ) + "\n```"
        pipeline, store, notifier = make_pipeline(raw)

        result = await pipeline.handle(CHAT_ID, MESSAGE_ID, "RAG > fine-tuning for fresh data")

        assert result.error is None
        assert result.destination.startswith("Knowledge/")
        assert result.tags == ["#knowledge", "#telegram", "#genai"]
        assert "> Retrieval first" in await store.get(result.destination)


class TestScenarioF:
    """Audit log append"""

    @pytest.mark.asyncio
    async def test_second_entry_appended(self):
        first = json.dumps({"ts": "2026-01-19T08:00:00.000Z", "telegram_msg_id": 1, "raw": "old"},
                           separators=(",", ":"))
        store = MemoryBlobStore({CAPTURE_LOG_KEY: first + "\n"})
        pipeline, _, _ = make_pipeline(
            classifier_json(type="action", confidence=0.9, title="Buy milk"), store=store,
        )

        await pipeline.handle(CHAT_ID, MESSAGE_ID, "buy milk")

        content = await store.get(CAPTURE_LOG_KEY)
        lines = content.split("\n")
        assert lines[0] == first
        assert len([line for line in lines if line]) == 2
        assert content.endswith("\n") and not content.endswith("\n\n")
        assert json.loads(lines[1])["raw"] == "buy milk"


# ============================================================================
# Failure paths
# ============================================================================

class TestClassifierFailures:
    @pytest.mark.asyncio
    async def test_classifier_unavailable(self):
        llm = scripted_llm()
        llm.is_available = False
        pipeline, store, notifier = make_pipeline(llm=llm)

        result = await pipeline.handle(CHAT_ID, MESSAGE_ID, "quick note")

        assert "not configured" in result.error
        assert result.destination.startswith("0-Inbox/Capture - quick note")
        assert notifier.texts[0][1].startswith("⚠️ Classified with fallback: ")
        assert len(await audit_entries(store)) == 1

    @pytest.mark.asyncio
    async def test_transport_error(self):
        pipeline, store, notifier = make_pipeline(llm=scripted_llm(side_effect=TimeoutError("timed out")))
        result = await pipeline.handle(CHAT_ID, MESSAGE_ID, "quick note")
        assert "timed out" in result.error
        assert result.destination is not None
        [entry] = await audit_entries(store)
        assert "timed out" in entry["error"]

    @pytest.mark.asyncio
    async def test_empty_capture_text(self):
        pipeline, _, _ = make_pipeline("garbage")
        result = await pipeline.handle(CHAT_ID, MESSAGE_ID, "")
        assert result.classification.title == "Capture"
        assert result.destination == f"0-Inbox/Capture - {TIMEPART}.md"


class TestPersistenceFailures:
    @pytest.mark.asyncio
    async def test_primary_write_failure_falls_back(self):
        store = FailingStore(lambda key: key.startswith("People/"))
        pipeline, _, notifier = make_pipeline(
            classifier_json(type="person", confidence=0.9, title="Sarah"), store=store,
        )

        result = await pipeline.handle(CHAT_ID, MESSAGE_ID, "met sarah")

        assert result.intended_destination == f"People/Sarah - {TIMEPART}.md"
        assert result.destination == f"0-Inbox/Capture - met sarah - {TIMEPART}.md"
        assert "Blob store write failed" in result.error
        assert notifier.reactions == []
        assert notifier.texts[0][1].startswith("⚠️ Classified with fallback: Blob store write failed")

        [entry] = await audit_entries(store)
        assert entry["intended_destination"] == result.intended_destination
        assert entry["destination"] == result.destination

    @pytest.mark.asyncio
    async def test_total_failure(self):
        store = FailingStore(lambda key: key.endswith(".md"))
        pipeline, _, notifier = make_pipeline("not json", store=store)

        result = await pipeline.handle(CHAT_ID, MESSAGE_ID, "lost thought")

        assert result.destination is None
        assert "fallback failed" in result.error
        assert notifier.texts == [
            (CHAT_ID, f"❌ Capture failed: Blob store write failed for 0-Inbox/Capture - lost thought - {TIMEPART}.md"),
        ]
        [entry] = await audit_entries(store)
        assert entry["destination"] is None
        assert entry["error"] == result.error

    @pytest.mark.asyncio
    async def test_audit_failure_does_not_affect_capture(self, caplog):
        import logging
        store = FailingStore(lambda key: key == CAPTURE_LOG_KEY)
        pipeline, _, notifier = make_pipeline(
            classifier_json(type="person", confidence=0.9, title="Sarah"), store=store,
        )

        with caplog.at_level(logging.ERROR, logger="brain.capture.audit"):
            result = await pipeline.handle(CHAT_ID, MESSAGE_ID, "met sarah")

        assert result.error is None
        assert note_keys(store) == [result.destination]
        assert notifier.reactions == [(CHAT_ID, MESSAGE_ID, "👍")]
        assert "Audit log write failed" in caplog.text


class TestSideEffects:
    @pytest.mark.asyncio
    async def test_sync_spawned_after_write(self):
        sync = MagicMock(spec=GitHubSync)
        sync.notify = AsyncMock(return_value=True)
        pipeline, _, _ = make_pipeline(
            classifier_json(type="person", confidence=0.9, title="Sarah"), sync=sync,
        )

        await pipeline.handle(CHAT_ID, MESSAGE_ID, "met sarah")
        await pipeline.drain()

        sync.notify.assert_awaited_once_with(f"Sarah - {TIMEPART}.md")
        assert pipeline.pending_tasks == 0

    @pytest.mark.asyncio
    async def test_sync_not_spawned_on_fallback(self):
        sync = MagicMock(spec=GitHubSync)
        sync.notify = AsyncMock(return_value=True)
        pipeline, _, _ = make_pipeline("garbage", sync=sync)

        await pipeline.handle(CHAT_ID, MESSAGE_ID, "x")
        await pipeline.drain()

        sync.notify.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_sync_failure_alerts_and_is_contained(self, caplog):
        import logging
        sync = MagicMock(spec=GitHubSync)
        sync.notify = AsyncMock(side_effect=GitHubSyncError("GitHub sync failed: 500 - oops"))
        pipeline, _, notifier = make_pipeline(
            classifier_json(type="person", confidence=0.9, title="Sarah"), sync=sync,
        )

        with caplog.at_level(logging.WARNING, logger="brain.capture.pipeline"):
            result = await pipeline.handle(CHAT_ID, MESSAGE_ID, "met sarah")
            await pipeline.drain()

        assert result.error is None
        assert notifier.alerts == [("notifyGitHub", "GitHub sync failed: 500 - oops")]
        assert "GitHub notify failed" in caplog.text

    @pytest.mark.asyncio
    async def test_notifier_failure_does_not_trigger_fallback(self):
        notifier = RecordingNotifier()
        notifier.react = AsyncMock(side_effect=RuntimeError("telegram down"))
        pipeline, store, _ = make_pipeline(
            classifier_json(type="person", confidence=0.9, title="Sarah"), notifier=notifier,
        )

        result = await pipeline.handle(CHAT_ID, MESSAGE_ID, "met sarah")

        assert result.error is None
        assert note_keys(store) == [result.destination]
        assert len(await audit_entries(store)) == 1

    @pytest.mark.asyncio
    async def test_vault_config_from_store(self):
        store = MemoryBlobStore({
            VAULT_CONTEXT_KEY: "### Folders\nperson_folder: Contacts\n\n### Topic Keywords\ngenai: AI, LLM\n",
        })
        llm = scripted_llm(classifier_json(type="person", confidence=0.9, title="Sarah"))
        pipeline, _, _ = make_pipeline(store=store, llm=llm)

        result = await pipeline.handle(CHAT_ID, MESSAGE_ID, "met sarah")

        assert result.destination.startswith("Contacts/")
        prompt = llm.generate.call_args.args[0]
        assert "- genai: ai, llm" in prompt

    @pytest.mark.asyncio
    async def test_custom_audit_log(self):
        store = MemoryBlobStore()
        pipeline = CapturePipeline(
            store=store,
            classifier=CaptureClassifier(scripted_llm("nope")),
            notifier=RecordingNotifier(),
            audit=AuditLog(store, key="logs/captures.jsonl"),
            clock=lambda: NOW,
        )
        await pipeline.handle(CHAT_ID, MESSAGE_ID, "x")
        assert "logs/captures.jsonl" in store.keys()
        assert CAPTURE_LOG_KEY not in store.keys()
