"""Error taxonomy for the agentbase execution runtime.

Every error carries a human-readable message and, where one exists, an
actionable ``hint`` naming a concrete diagnostic step. ``str(error)`` renders
both so CLI and log output stay useful without extra formatting.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional


class AgentbaseError(Exception):
    """Base exception for all runtime errors."""

    def __init__(
        self,
        message: str,
        *,
        hint: Optional[str] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.context: dict[str, Any] = dict(context or {})

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message}\n{self.hint}"
        return self.message


class ConfigurationError(AgentbaseError):
    """Required configuration (e.g. the remote API credential) is missing or invalid."""


class UnsupportedAgentKindError(AgentbaseError):
    """A request for an agent kind the runtime does not serve."""


class EngineExecutionError(AgentbaseError):
    """The execution engine failed or returned no usable session id."""


class SyncError(AgentbaseError):
    """A workspace sync operation failed after its retry budget."""

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        workspace_id: str,
        attempts: int,
        hint: Optional[str] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        merged = {"operation": operation, "workspace_id": workspace_id, "attempts": attempts}
        merged.update(context or {})
        super().__init__(message, hint=hint, context=merged)
        self.operation = operation
        self.workspace_id = workspace_id
        self.attempts = attempts


class RemoteCallError(AgentbaseError):
    """Base class for remote execution failures."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        hint: Optional[str] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message, hint=hint, context=context)
        self.status_code = status_code


class RemoteTimeoutError(RemoteCallError):
    """The remote call exceeded the configured wall-clock bound."""


class UnreachableError(RemoteCallError):
    """The remote execution service could not be reached."""


class AuthFailureError(RemoteCallError):
    """The remote service rejected the API credential (HTTP 401/403)."""


class EndpointNotFoundError(RemoteCallError):
    """The remote endpoint does not exist (HTTP 404)."""


class ServerError(RemoteCallError):
    """The remote service reported an execution failure."""


class GenericRemoteError(RemoteCallError):
    """Unclassified remote failure."""


__all__ = [
    "AgentbaseError",
    "AuthFailureError",
    "ConfigurationError",
    "EndpointNotFoundError",
    "EngineExecutionError",
    "GenericRemoteError",
    "RemoteCallError",
    "RemoteTimeoutError",
    "ServerError",
    "SyncError",
    "UnreachableError",
    "UnsupportedAgentKindError",
]
