"""Codex execution engine client."""

from agentbase.codex.cli_engine import CodexCLIConfig, CodexCLIEngine, load_codex_engine
from agentbase.codex.client import CodexClient, CodexExecutionResult
from agentbase.codex.engine import (
    CodexEngine,
    CodexThread,
    ReasoningEffort,
    SandboxMode,
    ThreadOptions,
    TurnResult,
)
from agentbase.codex.once import AsyncOnce

__all__ = [
    "AsyncOnce",
    "CodexCLIConfig",
    "CodexCLIEngine",
    "CodexClient",
    "CodexEngine",
    "CodexExecutionResult",
    "CodexThread",
    "ReasoningEffort",
    "SandboxMode",
    "ThreadOptions",
    "TurnResult",
    "load_codex_engine",
]
