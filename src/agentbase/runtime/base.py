"""Request, result and interface types shared by all runtimes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Protocol, Sequence

from agentbase.codex.engine import ReasoningEffort, SandboxMode
from agentbase.errors import UnsupportedAgentKindError
from agentbase.mcp.converters import McpServer

AgentKind = Literal["computer", "llm"]
RuntimeKind = Literal["local", "cloud"]


@dataclass(frozen=True, slots=True)
class RuntimeExecutionConfig:
    """One task execution request.

    ``sandbox_mode`` overrides the runtime's default when set. Only the
    ``"computer"`` agent kind is served by the runtimes in this package.
    """

    task: str
    workspace: str
    agent_kind: AgentKind = "computer"
    session_id: Optional[str] = None
    model: Optional[str] = None
    reasoning_effort: Optional[ReasoningEffort] = None
    mcp_servers: Sequence[McpServer] = ()
    sandbox_mode: Optional[SandboxMode] = None


@dataclass(slots=True)
class RuntimeExecutionResult:
    """Output of a runtime execution; ``metadata`` keys are additive."""

    output: str
    session_id: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)


class Runtime(Protocol):
    """Execution mode interface."""

    type: RuntimeKind

    async def execute(self, config: RuntimeExecutionConfig) -> RuntimeExecutionResult:
        ...

    async def cleanup(self) -> None:
        ...


def ensure_computer_agent(config: RuntimeExecutionConfig, runtime: RuntimeKind) -> None:
    """Reject requests for agent kinds other than ``computer``."""
    if config.agent_kind != "computer":
        raise UnsupportedAgentKindError(
            f"The {runtime} runtime only executes 'computer' agents, got '{config.agent_kind}'",
            hint="Run conversational ('llm') agents through the agent orchestration layer.",
            context={"runtime": runtime, "agent_kind": config.agent_kind},
        )


__all__ = [
    "AgentKind",
    "Runtime",
    "RuntimeExecutionConfig",
    "RuntimeExecutionResult",
    "RuntimeKind",
    "ensure_computer_agent",
]
