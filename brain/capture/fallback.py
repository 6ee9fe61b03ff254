"""
Fallback classification, derived from the raw text alone.
"""

from ..common.schemas.classification import CaptureFields, CaptureType, Classification

FALLBACK_TITLE = "Capture"
FALLBACK_TITLE_WORDS = 5
MAX_TITLE_LENGTH = 50


def fallback_title(text: str) -> str:
    """'Capture - ' plus the first five words, capped at 50 characters"""
    words = (text or "").split()[:FALLBACK_TITLE_WORDS]
    if not words:
        return FALLBACK_TITLE
    return f"Capture - {' '.join(words)}"[:MAX_TITLE_LENGTH]


def generate_fallback(text: str) -> Classification:
    """Classification used whenever the classifier path fails (type capture, confidence 0)"""
    return Classification(
        type=CaptureType.CAPTURE,
        confidence=0.0,
        title=fallback_title(text),
        topics=[],
        fields=CaptureFields(),
    )
