"""agentbase: dual-mode execution runtime for code-editing agents."""

from __future__ import annotations

__version__ = "0.1.0"

from agentbase.errors import (
    AgentbaseError,
    AuthFailureError,
    ConfigurationError,
    EndpointNotFoundError,
    EngineExecutionError,
    GenericRemoteError,
    RemoteCallError,
    RemoteTimeoutError,
    ServerError,
    SyncError,
    UnreachableError,
    UnsupportedAgentKindError,
)
from agentbase.runtime import (
    LocalRuntime,
    RemoteRuntime,
    Runtime,
    RuntimeExecutionConfig,
    RuntimeExecutionResult,
    create_runtime,
)
from agentbase.workspace import workspace_id

__all__ = [
    "AgentbaseError",
    "AuthFailureError",
    "ConfigurationError",
    "EndpointNotFoundError",
    "EngineExecutionError",
    "GenericRemoteError",
    "LocalRuntime",
    "RemoteCallError",
    "RemoteRuntime",
    "RemoteTimeoutError",
    "Runtime",
    "RuntimeExecutionConfig",
    "RuntimeExecutionResult",
    "ServerError",
    "SyncError",
    "UnreachableError",
    "UnsupportedAgentKindError",
    "__version__",
    "create_runtime",
    "workspace_id",
]
