"""Interface of the Codex execution engine consumed by :class:`CodexClient`."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping, Optional, Protocol, Sequence

SandboxMode = Literal["read-only", "workspace-write", "danger-full-access"]
ReasoningEffort = Literal["none", "low", "medium", "high"]


@dataclass(frozen=True, slots=True)
class ThreadOptions:
    """Options applied when a thread is started or resumed."""

    working_directory: str
    sandbox_mode: SandboxMode = "danger-full-access"
    model: Optional[str] = None
    reasoning_effort: Optional[ReasoningEffort] = None
    skip_git_repo_check: bool = True
    mcp_servers: Sequence[Mapping[str, Any]] = ()


@dataclass(slots=True)
class TurnResult:
    """Terminal result of one task run on a thread."""

    final_response: str
    items: list[dict[str, Any]] = field(default_factory=list)
    usage: Optional[Mapping[str, Any]] = None


class CodexThread(Protocol):
    """Conversation handle; ``id`` is known once the first turn started."""

    @property
    def id(self) -> Optional[str]:
        ...

    async def run(self, task: str) -> TurnResult:
        ...


class CodexEngine(Protocol):
    """Factory of thread handles."""

    def start_thread(self, options: ThreadOptions) -> CodexThread:
        ...

    def resume_thread(self, thread_id: str, options: ThreadOptions) -> CodexThread:
        ...


__all__ = [
    "CodexEngine",
    "CodexThread",
    "ReasoningEffort",
    "SandboxMode",
    "ThreadOptions",
    "TurnResult",
]
