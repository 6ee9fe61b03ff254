"""
Vault Context

The vault is synced into a single pre-aggregated markdown blob
(_vault_context.md). Each file appears as a "## File: <path>" section and the
sync script stamps the blob with "<!-- synced: <ISO timestamp> -->".
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from ..common.blob_store import BlobStore
from ..common.config import VAULT_CONTEXT_KEY

logger = logging.getLogger("brain.retriever.vault")

SYNC_MARKER = re.compile(r"<!-- synced: (\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z) -->")
FILE_SECTION = re.compile(r"^## File: ", re.MULTILINE)
STALE_AFTER_HOURS = 24


@dataclass
class VaultContext:
    """Loaded vault context blob"""
    content: Optional[str]
    synced_at: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return not self.content

    @property
    def size_kb(self) -> int:
        return round(len(self.content or "") / 1024)

    @property
    def file_count(self) -> int:
        return len(FILE_SECTION.findall(self.content or ""))

    def sync_age_hours(self, now: Optional[datetime] = None) -> Optional[int]:
        """Whole hours since the last sync, None when the blob has no marker"""
        if self.synced_at is None:
            return None
        now = now or datetime.now(timezone.utc)
        return round((now - self.synced_at).total_seconds() / 3600)

    def is_stale(self, now: Optional[datetime] = None) -> bool:
        age = self.sync_age_hours(now)
        return age is not None and age > STALE_AFTER_HOURS


def parse_synced_at(content: str) -> Optional[datetime]:
    match = SYNC_MARKER.search(content or "")
    if not match:
        return None
    return datetime.strptime(match.group(1), "%Y-%m-%dT%H:%M:%SZ").replace(tzinfo=timezone.utc)


async def load_vault_context(store: BlobStore, key: str = VAULT_CONTEXT_KEY) -> VaultContext:
    """Load the context blob; missing or unreadable means empty"""
    try:
        content = await store.get(key)
    except Exception as e:
        logger.error("Failed to load vault context: %s", e)
        return VaultContext(content=None)

    if not content:
        logger.warning("No %s found - run the vault sync first", key)
        return VaultContext(content=None)

    context = VaultContext(content=content, synced_at=parse_synced_at(content))
    logger.info("Loaded vault context (%dKB)", context.size_kb)
    return context
