"""Runtime executing tasks on the remote execution service."""

from __future__ import annotations

import logging
import time
from contextlib import nullcontext
from typing import Any, Optional

import anyio
import httpx

from agentbase.errors import (
    AuthFailureError,
    ConfigurationError,
    EndpointNotFoundError,
    ServerError,
)
from agentbase.mcp.converters import to_codex_wire_format
from agentbase.runtime.base import (
    RuntimeExecutionConfig,
    RuntimeExecutionResult,
    RuntimeKind,
    ensure_computer_agent,
)
from agentbase.runtime.errors import classify_remote_error
from agentbase.settings import RuntimeSettings, get_runtime_settings
from agentbase.workspace.identity import cloud_workspace_id, workspace_id
from agentbase.workspace.sync import WorkspaceSync

try:  # pragma: no cover - optional dependency
    from opentelemetry import trace
except ImportError:  # pragma: no cover - optional dependency
    trace = None

logger = logging.getLogger(__name__)

AUTH_FAILURE_CODES = {401, 403}


class RemoteRuntime:
    """Execute ``computer`` agents on the remote service.

    With workspace sync (default) every call uploads the workspace, posts the
    task to ``{api_url}/execute`` and downloads the result, strictly in that
    order. With ``skip_workspace_sync`` the task runs in a fresh, randomly
    named namespace and nothing is transferred.

    The POST is bounded by ``timeout_sec``; on expiry the request is cancelled.
    Nothing is retried here: every failure is classified into an actionable
    error and raised.
    """

    type: RuntimeKind = "cloud"

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        api_url: Optional[str] = None,
        timeout_sec: Optional[float] = None,
        skip_workspace_sync: bool = False,
        workspace_sync: Optional[WorkspaceSync] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        settings: Optional[RuntimeSettings] = None,
    ) -> None:
        resolved = settings or get_runtime_settings()
        key = api_key or resolved.API_KEY
        if not key:
            raise ConfigurationError(
                "RemoteRuntime requires an API key.",
                hint=(
                    "Provide it via:\n"
                    '  1. RemoteRuntime(api_key="...")\n'
                    "  2. Environment variable: export AGENTBASE_API_KEY=..."
                ),
            )
        if timeout_sec is not None and timeout_sec <= 0:
            raise ConfigurationError(f"timeout_sec must be positive, got {timeout_sec}")

        self._api_key = key
        self.api_url = (api_url or resolved.API_URL).rstrip("/")
        self.timeout_sec = timeout_sec if timeout_sec is not None else resolved.REQUEST_TIMEOUT_SEC
        self.skip_workspace_sync = skip_workspace_sync
        self._settings = resolved
        self._workspace_sync = workspace_sync
        self._http_client = http_client

    @property
    def workspace_sync(self) -> WorkspaceSync:
        if self._workspace_sync is None:
            self._workspace_sync = WorkspaceSync.from_settings(self._settings)
        return self._workspace_sync

    async def execute(self, config: RuntimeExecutionConfig) -> RuntimeExecutionResult:
        ensure_computer_agent(config, self.type)

        namespace = (
            cloud_workspace_id() if self.skip_workspace_sync else workspace_id(config.workspace)
        )
        logger.debug(
            "Executing remote task (namespace=%s, session=%s, workspace=%s, cloud_only=%s, api=%s)",
            namespace,
            config.session_id,
            config.workspace,
            self.skip_workspace_sync,
            self.api_url,
        )

        span_cm: Any = nullcontext()
        if trace is not None:  # pragma: no cover - optional instrumentation
            span_cm = trace.get_tracer("agentbase.runtime.remote").start_as_current_span(
                "runtime.remote.execute",
                attributes={"agentbase.workspace_id": namespace, "agentbase.api_url": self.api_url},
            )

        started = time.perf_counter()
        with span_cm:
            try:
                payload = await self._execute_steps(config, namespace)
            except Exception as exc:
                classified = classify_remote_error(
                    exc,
                    timeout_sec=self.timeout_sec,
                    api_url=self.api_url,
                    workspace_id=namespace,
                )
                logger.error("Remote execution failed (namespace=%s): %s", namespace, classified.message)
                if classified is exc:
                    raise
                raise classified from exc

        duration_ms = int((time.perf_counter() - started) * 1000)
        session_id = payload.get("sessionId")
        output = payload.get("output")
        logger.debug(
            "Remote task finished (session=%s, output=%d chars, %dms)",
            session_id,
            len(output or ""),
            duration_ms,
        )
        return RuntimeExecutionResult(
            output=output if isinstance(output, str) else "",
            session_id=session_id if isinstance(session_id, str) and session_id else None,
            metadata={
                "runtime": self.type,
                "workspace_id": payload.get("workspaceId") or namespace,
                "api_url": self.api_url,
                "cloud_only": self.skip_workspace_sync,
                "duration_ms": duration_ms,
            },
        )

    async def _execute_steps(
        self, config: RuntimeExecutionConfig, namespace: str
    ) -> dict[str, Any]:
        if self.skip_workspace_sync:
            logger.debug("Skipping workspace upload (cloud-only mode)")
        else:
            await self.workspace_sync.upload(config.workspace, namespace)

        payload = await self._post_execute(config, namespace)

        if self.skip_workspace_sync:
            logger.debug("Skipping workspace download (cloud-only mode)")
        else:
            await self.workspace_sync.download(namespace, config.workspace)
        return payload

    async def _post_execute(
        self, config: RuntimeExecutionConfig, namespace: str
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"task": config.task, "workspaceId": namespace}
        if config.session_id:
            body["sessionId"] = config.session_id
        if config.mcp_servers:
            body["mcpServers"] = [to_codex_wire_format(server) for server in config.mcp_servers]
        headers = {"Authorization": f"Bearer {self._api_key}"}
        url = f"{self.api_url}/execute"

        # fail_after cancels the in-flight request, which closes its connection.
        with anyio.fail_after(self.timeout_sec):
            if self._http_client is not None:
                response = await self._http_client.post(url, json=body, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=None) as client:
                    response = await client.post(url, json=body, headers=headers)

        if response.is_success:
            data = response.json()
            return data if isinstance(data, dict) else {}
        raise self._status_error(response)

    @staticmethod
    def _status_error(response: httpx.Response) -> Exception:
        try:
            data = response.json()
        except ValueError:
            data = {}
        detail = data.get("message") if isinstance(data, dict) else None
        detail = detail or response.reason_phrase
        status = response.status_code

        if status in AUTH_FAILURE_CODES:
            return AuthFailureError(
                f"Authentication failed ({status}): {detail}",
                status_code=status,
                hint=(
                    "Check your API key. Set it via:\n"
                    '  1. RemoteRuntime(api_key="...")\n'
                    "  2. Environment variable: export AGENTBASE_API_KEY=..."
                ),
            )
        if status == 404:
            return EndpointNotFoundError(
                f"Execution endpoint not found (404): {detail}; the server may be stale",
                status_code=status,
                hint="Ensure the remote host runs the latest service version with the /execute endpoint.",
            )
        return ServerError(
            f"Remote execution failed: {status} {detail}",
            status_code=status,
            hint="Check the execution service logs on the remote host for the failing request.",
        )

    async def cleanup(self) -> None:
        """Nothing to release: the runtime holds no per-session state."""


__all__ = ["RemoteRuntime"]
