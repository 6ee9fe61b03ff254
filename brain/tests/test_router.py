"""Tests for the routing policy."""

from datetime import datetime, timezone

import pytest

from brain.capture.router import (
    FeedbackTier,
    destination_folder,
    feedback_tier,
    format_timestamp,
    route,
    sanitize_filename,
    sanitize_title,
    timestamp_suffix,
)
from brain.common.schemas.classification import Classification
from brain.common.schemas.vault_config import DEFAULT_VAULT_CONFIG, VaultConfig, merge_vault_config

TIMESTAMP = "2026-01-20T12:00:00.000Z"


def _c(type_="person", confidence=0.85, title="Sarah - Acme Corp"):
    return Classification(type=type_, confidence=confidence, title=title)


class TestTimestamp:
    def test_format_timestamp_millis_z(self):
        moment = datetime(2026, 1, 20, 12, 0, 0, 123456, tzinfo=timezone.utc)
        assert format_timestamp(moment) == "2026-01-20T12:00:00.123Z"

    def test_naive_datetime_treated_as_utc(self):
        assert format_timestamp(datetime(2026, 1, 20, 12, 0)) == "2026-01-20T12:00:00.000Z"

    def test_default_is_now(self):
        assert format_timestamp().endswith("Z")

    def test_timestamp_suffix(self):
        assert timestamp_suffix(TIMESTAMP) == "2026-01-20T12-00-00"


class TestSanitize:
    def test_strips_unsafe_characters(self):
        assert sanitize_title('a<b>c:d"e/f\\g|h?i*j') == "abcdefghij"

    def test_collapses_whitespace(self):
        assert sanitize_title("  Sarah \t\n  Acme   Corp ") == "Sarah Acme Corp"

    def test_truncates_to_fifty(self):
        assert len(sanitize_title("x" * 80)) == 50

    def test_trailing_space_after_truncation_trimmed(self):
        title = "a" * 49 + " bcd"
        assert sanitize_title(title) == "a" * 49

    @pytest.mark.parametrize("title", [
        "Sarah - Acme Corp",
        'What? "Why" <now>: a/b',
        "a" * 49 + " tail",
        "   spaced    out   ",
        "word " * 20,
    ])
    def test_idempotent(self, title):
        once = sanitize_title(title)
        assert sanitize_title(once) == once

    def test_filename(self):
        assert sanitize_filename("Sarah: Acme?", TIMESTAMP) == "Sarah Acme - 2026-01-20T12-00-00"


class TestRoute:
    def test_person_high_confidence(self):
        assert route(_c(), DEFAULT_VAULT_CONFIG, TIMESTAMP) == (
            "People/Sarah - Acme Corp - 2026-01-20T12-00-00.md"
        )

    def test_low_confidence_goes_to_low_confidence_folder(self):
        assert destination_folder(_c(confidence=0.49), DEFAULT_VAULT_CONFIG) == "0-Inbox"

    def test_medium_threshold_is_inclusive(self):
        assert destination_folder(_c(type_="project", confidence=0.5), DEFAULT_VAULT_CONFIG) == "Projects"

    def test_configured_low_confidence_folder(self):
        cfg = merge_vault_config(DEFAULT_VAULT_CONFIG, VaultConfig(folders={"low_confidence": "Triage"}))
        assert destination_folder(_c(confidence=0.1), cfg) == "Triage"

    def test_configured_type_folder(self):
        cfg = merge_vault_config(DEFAULT_VAULT_CONFIG, VaultConfig(folders={"person": "Contacts"}))
        assert destination_folder(_c(), cfg) == "Contacts"

    @pytest.mark.parametrize("type_,folder", [
        ("person", "People"),
        ("project", "Projects"),
        ("knowledge", "Knowledge"),
        ("action", "0-Inbox"),
        ("capture", "0-Inbox"),
    ])
    def test_builtin_folders_when_unconfigured(self, type_, folder):
        assert destination_folder(_c(type_=type_, confidence=0.9), VaultConfig()) == folder

    def test_configured_thresholds(self):
        cfg = merge_vault_config(
            DEFAULT_VAULT_CONFIG, VaultConfig(thresholds={"medium_confidence": 0.8})
        )
        assert destination_folder(_c(confidence=0.75), cfg) == "0-Inbox"

    def test_deterministic(self):
        c = _c(type_="knowledge", confidence=0.66, title="RAG notes")
        assert route(c, DEFAULT_VAULT_CONFIG, TIMESTAMP) == route(c, DEFAULT_VAULT_CONFIG, TIMESTAMP)


class TestFeedbackTier:
    @pytest.mark.parametrize("confidence,tier", [
        (1.0, FeedbackTier.SILENT_SUCCESS),
        (0.7, FeedbackTier.SILENT_SUCCESS),
        (0.69, FeedbackTier.CONFIRM),
        (0.5, FeedbackTier.CONFIRM),
        (0.49, FeedbackTier.INBOX_HINT),
        (0.0, FeedbackTier.INBOX_HINT),
    ])
    def test_default_thresholds(self, confidence, tier):
        assert feedback_tier(_c(confidence=confidence), DEFAULT_VAULT_CONFIG) == tier
