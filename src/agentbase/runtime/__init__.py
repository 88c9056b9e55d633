"""Local and remote execution runtimes."""

from agentbase.runtime.base import (
    AgentKind,
    Runtime,
    RuntimeExecutionConfig,
    RuntimeExecutionResult,
    RuntimeKind,
    ensure_computer_agent,
)
from agentbase.runtime.errors import classify_remote_error
from agentbase.runtime.factory import RUNTIME_KINDS, create_runtime
from agentbase.runtime.local import LocalRuntime
from agentbase.runtime.remote import RemoteRuntime

__all__ = [
    "AgentKind",
    "LocalRuntime",
    "RUNTIME_KINDS",
    "RemoteRuntime",
    "Runtime",
    "RuntimeExecutionConfig",
    "RuntimeExecutionResult",
    "RuntimeKind",
    "classify_remote_error",
    "create_runtime",
    "ensure_computer_agent",
]
