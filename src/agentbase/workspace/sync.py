"""Workspace synchronization between a local tree and its remote namespace."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Awaitable, Callable, Optional, TypeVar

import anyio

from agentbase.errors import SyncError
from agentbase.settings import RuntimeSettings, get_runtime_settings
from agentbase.workspace.transports import GsutilTransport, SyncTransport

logger = logging.getLogger(__name__)

T = TypeVar("T")

MISSING_TARGET_MARKERS: tuple[str, ...] = (
    "not found",
    "no urls matched",
    "matched no objects",
    "does not exist",
)


class _MissingTarget(Exception):
    """Internal signal: the operation failed because the target does not exist."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(str(cause))
        self.cause = cause
        self.attempts = 1


def is_missing_target(exc: BaseException) -> bool:
    """Return True when ``exc`` says the namespace or object plainly does not exist."""
    if isinstance(exc, FileNotFoundError):
        return True
    message = str(exc).lower()
    return any(marker in message for marker in MISSING_TARGET_MARKERS)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    *,
    label: str,
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> tuple[T, int]:
    """Run ``operation`` with exponential backoff.

    Returns the result and the number of attempts used. Missing-target errors
    are raised immediately wrapped in ``_MissingTarget``; other errors are retried
    until ``max_attempts`` is exhausted, after which the last error propagates.
    """
    attempt = 1
    while True:
        try:
            return await operation(), attempt
        except Exception as exc:
            if is_missing_target(exc):
                raise _MissingTarget(exc) from exc
            if attempt >= max_attempts:
                raise
            delay = initial_delay * (2 ** (attempt - 1))
            logger.warning(
                "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                label,
                attempt,
                max_attempts,
                delay,
                exc,
            )
            await sleep(delay)
            attempt += 1


class WorkspaceSync:
    """Point-in-time mirror of a workspace to and from the object store.

    ``upload`` makes the remote namespace match the local tree; ``download``
    makes the local tree match the namespace. Both are idempotent. Downloading a
    namespace that was never uploaded is a no-op; uploading a missing local tree
    is an error.
    """

    def __init__(
        self,
        transport: SyncTransport,
        *,
        max_attempts: int = 3,
        initial_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.transport = transport
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Optional[RuntimeSettings] = None) -> "WorkspaceSync":
        """Build a gsutil-backed sync adapter from runtime settings."""
        resolved = settings or get_runtime_settings()
        transport = GsutilTransport(
            bucket=resolved.WORKSPACE_BUCKET,
            binary=resolved.GSUTIL_BINARY,
            timeout_sec=resolved.SYNC_TIMEOUT_SEC,
        )
        return cls(
            transport,
            max_attempts=resolved.SYNC_MAX_ATTEMPTS,
            initial_delay=resolved.SYNC_INITIAL_DELAY_SEC,
        )

    async def upload(self, local_path: str | os.PathLike[str], workspace_id: str) -> None:
        path = Path(local_path)
        logger.debug("Uploading %s to namespace %s", path, workspace_id)
        try:
            await self._run(
                "upload", workspace_id, lambda: self.transport.push(path, workspace_id)
            )
        except _MissingTarget as missing:
            raise SyncError(
                f"Failed to upload workspace {path} to namespace {workspace_id} "
                f"after {missing.attempts} attempt(s): {missing.cause}",
                operation="upload",
                workspace_id=workspace_id,
                attempts=missing.attempts,
                hint="Ensure the local workspace directory exists before uploading.",
            ) from missing.cause

    async def download(self, workspace_id: str, local_path: str | os.PathLike[str]) -> None:
        path = Path(local_path)
        await anyio.to_thread.run_sync(lambda: path.mkdir(parents=True, exist_ok=True))
        logger.debug("Downloading namespace %s to %s", workspace_id, path)
        try:
            await self._run(
                "download", workspace_id, lambda: self.transport.pull(workspace_id, path)
            )
        except _MissingTarget as missing:
            logger.debug(
                "Namespace %s has no objects yet; nothing to download (%s)",
                workspace_id,
                missing.cause,
            )

    async def _run(
        self,
        operation: str,
        workspace_id: str,
        call: Callable[[], Awaitable[None]],
    ) -> None:
        attempts_made = 0

        async def _attempt() -> None:
            nonlocal attempts_made
            attempts_made += 1
            await call()

        try:
            await retry_with_backoff(
                _attempt,
                label=f"Workspace {operation} ({self.transport.name})",
                max_attempts=self.max_attempts,
                initial_delay=self.initial_delay,
                sleep=self._sleep,
            )
        except _MissingTarget as missing:
            missing.attempts = attempts_made
            raise
        except Exception as exc:
            raise SyncError(
                f"Failed to {operation} workspace namespace {workspace_id} "
                f"after {attempts_made} attempt(s): {exc}",
                operation=operation,
                workspace_id=workspace_id,
                attempts=attempts_made,
                hint="Check object-store credentials, bucket permissions and network access.",
            ) from exc


__all__ = [
    "MISSING_TARGET_MARKERS",
    "WorkspaceSync",
    "is_missing_target",
    "retry_with_backoff",
]
