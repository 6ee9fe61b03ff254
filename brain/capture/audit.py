"""
Capture Audit Log

Append-only JSON-lines trail of every capture run, stored as a single blob.
Read-modify-write without locking: two captures racing on the log can lose
one entry.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..common.blob_store import BlobStore
from ..common.config import CAPTURE_LOG_KEY
from ..common.schemas.classification import Classification
from .router import format_timestamp

logger = logging.getLogger("brain.capture.audit")


@dataclass
class AuditEntry:
    """One capture run"""
    telegram_msg_id: Optional[int]
    raw: str
    classification: Optional[Classification] = None
    destination: Optional[str] = None
    intended_destination: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self, ts: Optional[str] = None) -> Dict[str, Any]:
        return {
            "ts": ts or format_timestamp(),
            "telegram_msg_id": self.telegram_msg_id,
            "raw": self.raw,
            "classification": (
                self.classification.model_dump(mode="json") if self.classification else None
            ),
            "destination": self.destination,
            "intended_destination": self.intended_destination,
            "tags": list(self.tags),
            "error": self.error,
        }

    def to_json_line(self, ts: Optional[str] = None) -> str:
        return json.dumps(self.to_dict(ts), ensure_ascii=False, separators=(",", ":"))


def append_line(existing: str, line: str) -> str:
    """Exactly one newline between old content and the new line, one after it"""
    existing = (existing or "").rstrip()
    if existing:
        return f"{existing}\n{line}\n"
    return f"{line}\n"


class AuditLog:
    """
    Audit log writer.

    Usage:
        audit = AuditLog(store)
        await audit.append(AuditEntry(telegram_msg_id=42, raw="text", ...))
    """

    def __init__(self, store: BlobStore, key: str = CAPTURE_LOG_KEY):
        self._store = store
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    async def _read(self) -> str:
        try:
            return await self._store.get(self._key) or ""
        except Exception as e:
            logger.debug("Audit log unreadable, starting fresh: %s", e)
            return ""

    async def append(self, entry: AuditEntry) -> bool:
        """
        Append one entry. Never raises.

        Returns:
            True if the log was written
        """
        try:
            line = entry.to_json_line()
            existing = await self._read()
            await self._store.put(
                self._key, append_line(existing, line), content_type="application/x-ndjson"
            )
        except Exception as e:
            logger.error("Audit log write failed: %s", e)
            return False
        return True
