"""
Blob Store

Key-value blob storage for vault notes, the vault context file, and the
capture audit log. Keys are "/"-delimited paths ("0-Inbox/note.md").
No transactional guarantees across keys.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger("brain.common.blob_store")


class BlobStoreError(RuntimeError):
    """Blob store read/write failure"""
    pass


@dataclass
class BlobInfo:
    """Listing entry for a stored blob"""
    key: str
    uploaded: datetime


class BlobStore(ABC):
    """
    Abstract blob store.

    Implementations must:
    - return None from get() for a missing key
    - create or overwrite on put()
    - list keys under a prefix, at most `limit` entries, in key order
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def put(self, key: str, content: str, content_type: str = "text/markdown") -> None:
        pass

    @abstractmethod
    async def list(self, prefix: str = "", limit: int = 1000) -> List[BlobInfo]:
        pass


class LocalBlobStore(BlobStore):
    """
    Blob store backed by a directory on disk (e.g. an Obsidian vault).

    Keys map to relative file paths under the root directory. Content type is
    implied by the file extension and not stored. Disk I/O runs in a worker
    thread so the event loop keeps serving webhooks.
    """

    def __init__(self, root: str):
        self._root = Path(root).expanduser().resolve()

    @property
    def root(self) -> Path:
        return self._root

    def _path_for(self, key: str) -> Path:
        if not key or key.startswith("/") or ".." in key.split("/"):
            raise BlobStoreError(f"Blob store: invalid key {key!r}")
        return self._root / key

    def _read(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        if not path.is_file():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise BlobStoreError(f"Blob store read failed for {key}: {e}") from e

    def _write(self, key: str, content: str) -> None:
        path = self._path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise BlobStoreError(f"Blob store write failed for {key}: {e}") from e

    def _scan(self, prefix: str, limit: int) -> List[BlobInfo]:
        # Only the directory holding the prefix needs walking
        folder = prefix.rpartition("/")[0]
        if prefix.startswith("/") or ".." in folder.split("/"):
            return []
        base = self._root / folder if folder else self._root
        if not base.is_dir():
            return []

        entries = []
        for path in sorted(base.rglob("*")):
            key = path.relative_to(self._root).as_posix()
            if not key.startswith(prefix) or not path.is_file():
                continue
            uploaded = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
            entries.append(BlobInfo(key=key, uploaded=uploaded))
            if len(entries) >= limit:
                break
        return entries

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._read, key)

    async def put(self, key: str, content: str, content_type: str = "text/markdown") -> None:
        await asyncio.to_thread(self._write, key, content)
        logger.debug("Stored %s (%s, %d chars)", key, content_type, len(content))

    async def list(self, prefix: str = "", limit: int = 1000) -> List[BlobInfo]:
        return await asyncio.to_thread(self._scan, prefix, limit)


class MemoryBlobStore(BlobStore):
    """In-memory blob store for tests and dry runs"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._blobs: Dict[str, Tuple[str, str, datetime]] = {}
        for key, content in (initial or {}).items():
            self._blobs[key] = (content, "text/markdown", datetime.now(timezone.utc))

    async def get(self, key: str) -> Optional[str]:
        entry = self._blobs.get(key)
        return entry[0] if entry else None

    async def put(self, key: str, content: str, content_type: str = "text/markdown") -> None:
        self._blobs[key] = (content, content_type, datetime.now(timezone.utc))

    async def list(self, prefix: str = "", limit: int = 1000) -> List[BlobInfo]:
        keys = sorted(k for k in self._blobs if k.startswith(prefix))
        return [BlobInfo(key=k, uploaded=self._blobs[k][2]) for k in keys[:limit]]

    def content_type(self, key: str) -> Optional[str]:
        entry = self._blobs.get(key)
        return entry[1] if entry else None

    def keys(self) -> List[str]:
        return sorted(self._blobs)
