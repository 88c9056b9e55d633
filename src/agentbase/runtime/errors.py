"""Classification of remote execution failures into actionable errors."""

from __future__ import annotations

import asyncio
import re
from typing import Optional

import httpx

from agentbase.errors import (
    AgentbaseError,
    EndpointNotFoundError,
    GenericRemoteError,
    RemoteCallError,
    RemoteTimeoutError,
    ServerError,
    SyncError,
    UnreachableError,
)

_UNREACHABLE_MARKERS = ("econnrefused", "connection refused", "fetch failed", "connect call failed")
_SYNC_MARKERS = ("workspace", "namespace", "storage", "gsutil", "gs://", "bucket")
_SERVER_ERROR_RE = re.compile(r"\b5\d\d\b")
_NOT_FOUND_RE = re.compile(r"\b404\b")

SYNC_CHECKLIST = (
    "Workspace sync failed. Possible causes:\n"
    "  - object-store bucket permissions (gsutil iam get gs://<bucket>)\n"
    "  - gsutil missing or not authenticated (gcloud auth login)\n"
    "  - network connectivity to the object store"
)


def _unreachable_hint(api_url: str) -> str:
    return (
        f"Could not connect to the execution service at {api_url}. Possible causes:\n"
        "  - the remote host is not running\n"
        "  - the execution service is not started on the host\n"
        "  - a firewall is blocking the service port\n"
        "  - AGENTBASE_API_URL points at the wrong address"
    )


def _debug_checklist(api_url: str) -> str:
    return (
        "Debug steps:\n"
        f"  1. Check service health: curl {api_url}/health\n"
        "  2. Inspect the execution service logs on the remote host\n"
        "  3. Re-run with --verbose for the full request trace"
    )


def _status_code(exc: BaseException) -> Optional[int]:
    if isinstance(exc, RemoteCallError):
        return exc.status_code
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code
    return None


def classify_remote_error(
    exc: Exception,
    *,
    timeout_sec: float,
    api_url: str,
    workspace_id: str = "",
) -> AgentbaseError:
    """Map any failure of a remote execution onto the error taxonomy.

    Only the message and type change; the caller re-raises the result chained
    to ``exc``. Errors that are already classified are returned unchanged.
    """
    if isinstance(exc, RemoteCallError):
        return exc
    if isinstance(exc, SyncError):
        if exc.hint is None:
            exc.hint = SYNC_CHECKLIST
        return exc

    message = str(exc) or type(exc).__name__
    lowered = message.lower()

    if isinstance(exc, (TimeoutError, asyncio.TimeoutError, httpx.TimeoutException)):
        return RemoteTimeoutError(
            f"Remote execution timed out after {timeout_sec:g}s",
            hint=(
                "The task may be taking too long or the remote host may be unresponsive. "
                "Increase the timeout (AGENTBASE_REQUEST_TIMEOUT_SEC) or check the host status."
            ),
            context={"timeout_sec": timeout_sec},
        )

    if isinstance(exc, (httpx.ConnectError, ConnectionRefusedError)) or any(
        marker in lowered for marker in _UNREACHABLE_MARKERS
    ):
        return UnreachableError(
            f"Failed to connect to the execution service at {api_url}: {message}",
            hint=_unreachable_hint(api_url),
            context={"api_url": api_url},
        )

    status = _status_code(exc)
    if status == 404 or (status is None and _NOT_FOUND_RE.search(message)):
        return EndpointNotFoundError(
            f"Execution endpoint not found (404) at {api_url}/execute; the server may be stale",
            status_code=404,
            hint="Ensure the remote host runs the latest service version with the /execute endpoint.",
        )

    if (status is not None and status >= 500) or (
        status is None
        and (_SERVER_ERROR_RE.search(message) or "execution failed" in lowered)
    ):
        return ServerError(
            f"Remote server error: {message}",
            status_code=status,
            hint="Check the execution service logs on the remote host for the failing request.",
        )

    if any(marker in lowered for marker in _SYNC_MARKERS):
        return SyncError(
            f"Workspace sync failed: {message}",
            operation="sync",
            workspace_id=workspace_id,
            attempts=0,
            hint=SYNC_CHECKLIST,
        )

    return GenericRemoteError(
        f"Remote execution failed: {message}",
        status_code=status,
        hint=_debug_checklist(api_url),
    )


__all__ = ["SYNC_CHECKLIST", "classify_remote_error"]
