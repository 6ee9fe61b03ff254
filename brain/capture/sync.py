"""
GitHub Sync

Triggers GitHub Actions in the vault repository: a repository_dispatch per
capture (so the vault repo pulls the new note) and the digest workflow.
"""

import logging
from typing import Optional

import httpx

from ..common.config import SyncConfig

logger = logging.getLogger("brain.capture.sync")

GITHUB_API_BASE = "https://api.github.com"
CAPTURE_EVENT_TYPE = "telegram_capture"
USER_AGENT = "telegram-brain-bot"


class GitHubSyncError(RuntimeError):
    """Dispatch rejected by GitHub"""
    pass


class GitHubSync:
    """
    GitHub Actions dispatcher.

    Usage:
        sync = GitHubSync(config.sync)
        await sync.notify("Sarah - Acme Corp - 2026-01-20T12-00-00.md")
    """

    def __init__(
        self,
        config: SyncConfig,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._config = config
        self._timeout = timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self._config.github_token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
        }

    async def _dispatch(self, path: str, payload: dict) -> httpx.Response:
        url = f"{GITHUB_API_BASE}/repos/{self._config.github_repo}/{path}"
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self._timeout), transport=self._transport
        ) as client:
            return await client.post(url, json=payload, headers=self._headers())

    async def notify(self, filename: str) -> bool:
        """
        Ask the vault repo to sync a new capture.

        Returns:
            False when sync is not configured, True when dispatched

        Raises:
            GitHubSyncError: GitHub did not accept the dispatch
            httpx.HTTPError: transport failure
        """
        if not self.enabled:
            logger.info("GitHub sync disabled: missing GITHUB_TOKEN or GITHUB_REPO")
            return False

        response = await self._dispatch("dispatches", {
            "event_type": CAPTURE_EVENT_TYPE,
            "client_payload": {"filename": filename},
        })
        if response.status_code != 204:
            raise GitHubSyncError(
                f"GitHub sync failed: {response.status_code} - {response.text[:100]}"
            )

        logger.info("GitHub: triggered sync for %s", filename)
        return True

    async def trigger_digest(self, digest_type: str) -> int:
        """
        Dispatch the digest workflow.

        Returns:
            HTTP status code from GitHub (204 on success)
        """
        workflow = self._config.digest_workflow
        response = await self._dispatch(f"actions/workflows/{workflow}/dispatches", {
            "ref": self._config.digest_ref,
            "inputs": {"digest_type": digest_type},
        })
        if response.status_code != 204:
            logger.warning(
                "Digest trigger failed: %s - %s", response.status_code, response.text[:200]
            )
        return response.status_code
