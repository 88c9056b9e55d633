"""Runtime executing tasks with the Codex engine on this machine."""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Optional

import anyio

from agentbase.codex.client import CodexClient
from agentbase.codex.engine import SandboxMode
from agentbase.runtime.base import (
    RuntimeExecutionConfig,
    RuntimeExecutionResult,
    RuntimeKind,
    ensure_computer_agent,
)

logger = logging.getLogger(__name__)


class LocalRuntime:
    """Execute ``computer`` agents locally, continuing Codex threads by session id.

    The workspace directory is created before the engine runs. Engine errors
    propagate unchanged and nothing is retried.
    """

    type: RuntimeKind = "local"

    def __init__(
        self,
        client: Optional[CodexClient] = None,
        *,
        skip_git_repo_check: bool = True,
        sandbox_mode: SandboxMode = "danger-full-access",
    ) -> None:
        self.client = client or CodexClient()
        self.skip_git_repo_check = skip_git_repo_check
        self.sandbox_mode: SandboxMode = sandbox_mode

    async def execute(self, config: RuntimeExecutionConfig) -> RuntimeExecutionResult:
        ensure_computer_agent(config, self.type)

        repo_path = os.path.abspath(config.workspace)
        await anyio.to_thread.run_sync(
            lambda: Path(repo_path).mkdir(parents=True, exist_ok=True)
        )

        logger.debug(
            "Executing local task (workspace=%s, session=%s, model=%s, mcp_servers=%d)",
            repo_path,
            config.session_id,
            config.model,
            len(config.mcp_servers),
        )

        started = time.perf_counter()
        result = await self.client.execute(
            config.task,
            repo_path,
            session_id=config.session_id,
            model=config.model,
            mcp_servers=config.mcp_servers,
            sandbox_mode=config.sandbox_mode or self.sandbox_mode,
            reasoning_effort=config.reasoning_effort,
            skip_git_repo_check=self.skip_git_repo_check,
        )
        duration_ms = int((time.perf_counter() - started) * 1000)

        logger.debug(
            "Local task finished (session=%s, output=%d chars, %dms)",
            result.thread_id,
            len(result.output),
            duration_ms,
        )
        return RuntimeExecutionResult(
            output=result.output,
            session_id=result.thread_id,
            metadata={
                "runtime": self.type,
                "workspace": repo_path,
                "usage": dict(result.turn.usage) if result.turn.usage else None,
                "duration_ms": duration_ms,
                "model": config.model,
            },
        )

    async def cleanup(self) -> None:
        self.client.clear_cache()
        logger.debug("Local runtime thread cache cleared")


__all__ = ["LocalRuntime"]
