"""
Capture

Classification and routing pipeline for Telegram captures.
"""

from .classifier import CaptureClassifier, ClassifierError
from .validator import parse_classifier_response, validate_classification
from .router import FeedbackTier, feedback_tier, format_timestamp, route, sanitize_filename
from .fallback import generate_fallback
from .audit import AuditEntry, AuditLog
from .sync import GitHubSync, GitHubSyncError
from .pipeline import CapturePipeline, CaptureResult, InvalidClassificationError

__all__ = [
    "CaptureClassifier",
    "ClassifierError",
    "parse_classifier_response",
    "validate_classification",
    "FeedbackTier",
    "feedback_tier",
    "format_timestamp",
    "route",
    "sanitize_filename",
    "generate_fallback",
    "AuditEntry",
    "AuditLog",
    "GitHubSync",
    "GitHubSyncError",
    "CapturePipeline",
    "CaptureResult",
    "InvalidClassificationError",
]
