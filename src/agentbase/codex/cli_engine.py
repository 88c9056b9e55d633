"""Codex engine backed by the ``codex exec --json`` command line."""

from __future__ import annotations

import asyncio
import logging
import shutil
import time
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from agentbase.codex.engine import ThreadOptions, TurnResult
from agentbase.codex.events import TurnCollector, decode_events, strip_ansi
from agentbase.errors import EngineExecutionError
from agentbase.mcp.converters import toml_value, unique_server_labels
from agentbase.settings import RuntimeSettings, get_runtime_settings
from agentbase.workspace.transports import kill_process

logger = logging.getLogger(__name__)

# Engine-format record keys and their Codex config.toml names.
_MCP_KEY_MAP: dict[str, str] = {
    "command": "command",
    "args": "args",
    "env": "env",
    "cwd": "cwd",
    "url": "url",
    "bearer_token": "bearer_token",
    "headers": "headers",
    "startup_timeout_sec": "startup_timeout_sec",
    "tool_timeout_sec": "tool_timeout_sec",
    "allowed_tools": "enabled_tools",
}


@dataclass(slots=True)
class CodexCLIConfig:
    """Configuration for invoking the Codex CLI."""

    binary: str = "codex"
    timeout_sec: float = 1800.0


def mcp_config_overrides(servers: Sequence[Mapping[str, Any]]) -> list[str]:
    """Translate engine-format MCP records into ``-c key=value`` overrides."""
    labels = unique_server_labels(str(server.get("name", "")) for server in servers)
    overrides: list[str] = []
    for label, server in zip(labels, servers):
        for key, config_key in _MCP_KEY_MAP.items():
            value = server.get(key)
            if value is None or value == {} or value == []:
                continue
            overrides.extend(["-c", f"mcp_servers.{label}.{config_key}={toml_value(value)}"])
    return overrides


def build_exec_command(
    binary: str,
    task: str,
    options: ThreadOptions,
    thread_id: Optional[str] = None,
) -> list[str]:
    """Assemble one ``codex exec`` invocation."""
    command: list[str] = [
        binary,
        "exec",
        "--json",
        "--sandbox",
        options.sandbox_mode,
        "--cd",
        options.working_directory,
    ]
    if options.skip_git_repo_check:
        command.append("--skip-git-repo-check")
    if options.model:
        command.extend(["--model", options.model])
    if options.reasoning_effort:
        command.extend(["-c", f"model_reasoning_effort={toml_value(options.reasoning_effort)}"])
    command.extend(mcp_config_overrides(options.mcp_servers))

    if thread_id:
        command.extend(["resume", thread_id])
    command.append(task)
    return command


class CodexCLIThread:
    """Thread handle whose turns are separate ``codex exec`` processes."""

    def __init__(
        self,
        config: CodexCLIConfig,
        options: ThreadOptions,
        thread_id: Optional[str] = None,
    ) -> None:
        self._config = config
        self._options = options
        self._id = thread_id

    @property
    def id(self) -> Optional[str]:
        return self._id

    async def run(self, task: str) -> TurnResult:
        command = build_exec_command(self._config.binary, task, self._options, self._id)
        logger.debug("Starting codex turn (thread=%s) in %s", self._id, self._options.working_directory)

        started = time.perf_counter()
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self._options.working_directory,
            )
        except FileNotFoundError as exc:
            raise EngineExecutionError(
                f"Codex CLI binary '{self._config.binary}' could not be started: {exc}",
                hint="Install the Codex CLI or set AGENTBASE_CODEX_BINARY.",
            ) from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self._config.timeout_sec
            )
        except asyncio.TimeoutError:
            kill_process(process)
            await process.wait()
            raise EngineExecutionError(
                f"Codex CLI timed out after {self._config.timeout_sec:g}s"
            ) from None
        except asyncio.CancelledError:
            kill_process(process)
            raise

        duration_ms = (time.perf_counter() - started) * 1000
        stdout_text = strip_ansi(stdout.decode("utf-8", errors="replace"))
        stderr_text = strip_ansi(stderr.decode("utf-8", errors="replace")).strip()

        collector = TurnCollector().feed_all(decode_events(stdout_text.splitlines()))
        if collector.thread_id:
            self._id = collector.thread_id

        if collector.error or (process.returncode != 0 and not collector.completed):
            detail = collector.error or stderr_text or f"exit status {process.returncode}"
            raise EngineExecutionError(
                f"Codex turn failed: {detail}",
                context={"returncode": process.returncode, "thread_id": self._id},
            )

        logger.debug("Codex turn finished in %.0fms (thread=%s)", duration_ms, self._id)
        return TurnResult(
            final_response=collector.final_response,
            items=collector.items,
            usage=collector.usage,
        )


class CodexCLIEngine:
    """Execution engine spawning the Codex CLI for every turn."""

    def __init__(self, config: CodexCLIConfig | None = None) -> None:
        self.config = config or CodexCLIConfig()

    def is_available(self) -> bool:
        """Check if Codex CLI is available on PATH."""
        return shutil.which(self.config.binary) is not None

    def start_thread(self, options: ThreadOptions) -> CodexCLIThread:
        return CodexCLIThread(self.config, options)

    def resume_thread(self, thread_id: str, options: ThreadOptions) -> CodexCLIThread:
        return CodexCLIThread(self.config, options, thread_id=thread_id)


async def load_codex_engine(settings: RuntimeSettings | None = None) -> CodexCLIEngine:
    """Create the CLI engine after verifying the binary responds."""
    resolved = settings or get_runtime_settings()
    engine = CodexCLIEngine(
        CodexCLIConfig(binary=resolved.CODEX_BINARY, timeout_sec=resolved.CODEX_TIMEOUT_SEC)
    )
    if not engine.is_available():
        raise EngineExecutionError(
            f"Codex CLI binary '{engine.config.binary}' not found in PATH.",
            hint="Install the Codex CLI (npm i -g @openai/codex) or set AGENTBASE_CODEX_BINARY.",
        )

    process = await asyncio.create_subprocess_exec(
        engine.config.binary,
        "--version",
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await process.communicate()
    if process.returncode != 0:
        raise EngineExecutionError(
            f"Codex CLI '{engine.config.binary} --version' exited with status "
            f"{process.returncode}: {stderr.decode('utf-8', errors='replace').strip()}"
        )
    logger.debug("Loaded Codex CLI %s", stdout.decode("utf-8", errors="replace").strip())
    return engine


__all__ = [
    "CodexCLIConfig",
    "CodexCLIEngine",
    "CodexCLIThread",
    "build_exec_command",
    "load_codex_engine",
    "mcp_config_overrides",
]
