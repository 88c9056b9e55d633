"""Session-aware client over a Codex execution engine."""

from __future__ import annotations

import logging
from contextlib import nullcontext
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, MutableMapping, Optional, Sequence

from agentbase.codex.cli_engine import load_codex_engine
from agentbase.codex.engine import (
    CodexEngine,
    CodexThread,
    ReasoningEffort,
    SandboxMode,
    ThreadOptions,
    TurnResult,
)
from agentbase.codex.once import AsyncOnce
from agentbase.errors import EngineExecutionError
from agentbase.mcp.converters import McpServer, to_codex_format
from agentbase.settings import RuntimeSettings

try:  # pragma: no cover - optional dependency
    from opentelemetry import trace
except ImportError:  # pragma: no cover - optional dependency
    trace = None

logger = logging.getLogger(__name__)

EngineFactory = Callable[[], Awaitable[CodexEngine]]


@dataclass(slots=True)
class CodexExecutionResult:
    """Outcome of one ``CodexClient.execute`` call."""

    output: str
    thread_id: str
    turn: TurnResult


class CodexClient:
    """Run tasks on Codex threads, keeping live handles keyed by thread id.

    The engine is created lazily on the first call and shared afterwards.
    ``thread_cache`` belongs to this instance; pass a mapping to observe or
    pre-populate it.
    """

    def __init__(
        self,
        engine_factory: Optional[EngineFactory] = None,
        *,
        thread_cache: Optional[MutableMapping[str, CodexThread]] = None,
        settings: Optional[RuntimeSettings] = None,
    ) -> None:
        if engine_factory is None:
            engine_factory = lambda: load_codex_engine(settings)  # noqa: E731
        self._engine = AsyncOnce(engine_factory)
        self.thread_cache: MutableMapping[str, CodexThread] = (
            thread_cache if thread_cache is not None else {}
        )

    async def get_engine(self) -> CodexEngine:
        return await self._engine.get()

    async def execute(
        self,
        task: str,
        workspace: str,
        *,
        session_id: Optional[str] = None,
        model: Optional[str] = None,
        mcp_servers: Optional[Sequence[McpServer]] = None,
        sandbox_mode: SandboxMode = "danger-full-access",
        reasoning_effort: Optional[ReasoningEffort] = None,
        skip_git_repo_check: bool = True,
    ) -> CodexExecutionResult:
        """Run exactly one task, resuming ``session_id`` when given."""
        engine = await self.get_engine()
        options = ThreadOptions(
            working_directory=workspace,
            sandbox_mode=sandbox_mode,
            model=model,
            reasoning_effort=reasoning_effort,
            skip_git_repo_check=skip_git_repo_check,
            mcp_servers=tuple(to_codex_format(server) for server in mcp_servers or ()),
        )

        thread: CodexThread
        if session_id and session_id in self.thread_cache:
            logger.debug("Reusing cached Codex thread %s", session_id)
            thread = self.thread_cache[session_id]
        elif session_id:
            logger.debug("Resuming Codex thread %s", session_id)
            thread = engine.resume_thread(session_id, options)
            self.thread_cache[session_id] = thread
        else:
            logger.debug("Starting new Codex thread in %s", workspace)
            thread = engine.start_thread(options)

        span_cm: Any = nullcontext()
        if trace is not None:  # pragma: no cover - optional instrumentation
            span_cm = trace.get_tracer("agentbase.codex.client").start_as_current_span(
                "codex.execute",
                attributes={"codex.workspace": workspace, "codex.resumed": bool(session_id)},
            )

        with span_cm as span:
            turn = await thread.run(task)

            thread_id = thread.id
            if not thread_id:
                raise EngineExecutionError(
                    "Codex did not report a thread id; the session cannot be continued",
                    hint="Verify the Codex CLI emits 'thread.started' events (codex exec --json).",
                )
            if span is not None:
                span.set_attribute("codex.thread_id", thread_id)

        self.thread_cache[thread_id] = thread
        return CodexExecutionResult(output=turn.final_response, thread_id=thread_id, turn=turn)

    def clear_cache(self) -> None:
        """Forget every cached thread handle; engine sessions are left intact."""
        self.thread_cache.clear()

    def remove_thread(self, thread_id: str) -> None:
        self.thread_cache.pop(thread_id, None)


__all__ = ["CodexClient", "CodexExecutionResult", "EngineFactory"]
