from __future__ import annotations

import asyncio

import httpx
import pytest

from agentbase.errors import (
    AuthFailureError,
    EndpointNotFoundError,
    GenericRemoteError,
    RemoteTimeoutError,
    ServerError,
    SyncError,
    UnreachableError,
)
from agentbase.runtime.errors import classify_remote_error

API_URL = "http://exec.test"


def _classify(exc: Exception):
    return classify_remote_error(exc, timeout_sec=600, api_url=API_URL, workspace_id="ws-1")


def test_already_classified_errors_pass_through() -> None:
    auth = AuthFailureError("Authentication failed (403): nope", status_code=403)
    sync = SyncError("sync broke", operation="upload", workspace_id="ws-1", attempts=3)

    assert _classify(auth) is auth
    assert _classify(sync) is sync
    assert sync.hint is not None


@pytest.mark.parametrize("exc", [TimeoutError(), asyncio.TimeoutError(), httpx.ReadTimeout("slow")])
def test_timeouts_name_the_bound(exc: Exception) -> None:
    classified = _classify(exc)
    assert isinstance(classified, RemoteTimeoutError)
    assert "600s" in classified.message


@pytest.mark.parametrize(
    "exc",
    [
        ConnectionRefusedError(111, "Connection refused"),
        RuntimeError("connect ECONNREFUSED 127.0.0.1:8080"),
        RuntimeError("fetch failed"),
    ],
)
def test_unreachable_includes_checklist(exc: Exception) -> None:
    classified = _classify(exc)
    assert isinstance(classified, UnreachableError)
    assert API_URL in classified.message
    assert "firewall" in (classified.hint or "")


def test_not_found_mentions_stale_server() -> None:
    classified = _classify(RuntimeError("HTTP 404 from upstream"))
    assert isinstance(classified, EndpointNotFoundError)
    assert classified.status_code == 404
    assert "stale" in classified.message


@pytest.mark.parametrize(
    "exc",
    [RuntimeError("upstream returned 502"), RuntimeError("GCE execution failed: boom")],
)
def test_server_errors_point_to_logs(exc: Exception) -> None:
    classified = _classify(exc)
    assert isinstance(classified, ServerError)
    assert "logs" in (classified.hint or "")


def test_http_status_error_uses_status_code() -> None:
    request = httpx.Request("POST", f"{API_URL}/execute")
    response = httpx.Response(503, request=request)
    exc = httpx.HTTPStatusError("Service Unavailable", request=request, response=response)

    classified = _classify(exc)

    assert isinstance(classified, ServerError)
    assert classified.status_code == 503


def test_storage_wording_becomes_sync_error() -> None:
    classified = _classify(RuntimeError("gsutil: bucket permission denied"))
    assert isinstance(classified, SyncError)
    assert classified.workspace_id == "ws-1"
    assert "bucket permissions" in (classified.hint or "")


def test_anything_else_is_generic_with_debug_steps() -> None:
    classified = _classify(KeyError("output"))
    assert isinstance(classified, GenericRemoteError)
    assert "output" in classified.message
    assert f"curl {API_URL}/health" in (classified.hint or "")
