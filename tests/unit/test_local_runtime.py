from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest

from agentbase.codex.client import CodexClient
from agentbase.codex.engine import ThreadOptions, TurnResult
from agentbase.errors import EngineExecutionError, UnsupportedAgentKindError
from agentbase.runtime import LocalRuntime, RuntimeExecutionConfig


class _FileWritingThread:
    def __init__(self, options: ThreadOptions, thread_id: Optional[str] = None) -> None:
        self.options = options
        self._id = thread_id

    @property
    def id(self) -> Optional[str]:
        return self._id

    async def run(self, task: str) -> TurnResult:
        (Path(self.options.working_directory) / "a.txt").write_text(task, encoding="utf-8")
        self._id = self._id or "t1"
        return TurnResult(final_response="done", usage={"output_tokens": 2})


class _StubEngine:
    def __init__(self) -> None:
        self.options: list[ThreadOptions] = []
        self.resumed: list[str] = []

    def start_thread(self, options: ThreadOptions) -> _FileWritingThread:
        self.options.append(options)
        return _FileWritingThread(options)

    def resume_thread(self, thread_id: str, options: ThreadOptions) -> _FileWritingThread:
        self.options.append(options)
        self.resumed.append(thread_id)
        return _FileWritingThread(options, thread_id)


class _FailingEngine:
    def start_thread(self, options: ThreadOptions):
        raise EngineExecutionError("engine exploded")

    def resume_thread(self, thread_id: str, options: ThreadOptions):
        raise EngineExecutionError("engine exploded")


def _runtime(engine, **kwargs) -> LocalRuntime:
    async def factory():
        return engine

    return LocalRuntime(CodexClient(factory), **kwargs)


@pytest.mark.asyncio
async def test_execute_creates_workspace_and_returns_session(tmp_path: Path) -> None:
    engine = _StubEngine()
    runtime = _runtime(engine)
    workspace = tmp_path / "w1"
    assert not workspace.exists()

    result = await runtime.execute(RuntimeExecutionConfig(task="create a.txt", workspace=str(workspace)))

    assert result.session_id == "t1"
    assert result.output == "done"
    assert workspace.is_dir()
    assert (workspace / "a.txt").read_text(encoding="utf-8") == "create a.txt"
    assert result.metadata["runtime"] == "local"
    assert result.metadata["workspace"] == str(workspace)
    assert result.metadata["usage"] == {"output_tokens": 2}
    assert isinstance(result.metadata["duration_ms"], int)


@pytest.mark.asyncio
async def test_relative_workspace_is_resolved(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    engine = _StubEngine()
    runtime = _runtime(engine)

    await runtime.execute(RuntimeExecutionConfig(task="t", workspace="nested/repo"))

    assert engine.options[0].working_directory == str(tmp_path / "nested" / "repo")
    assert (tmp_path / "nested" / "repo").is_dir()


@pytest.mark.asyncio
async def test_defaults_to_full_access_sandbox(tmp_path: Path) -> None:
    engine = _StubEngine()
    runtime = _runtime(engine)

    await runtime.execute(RuntimeExecutionConfig(task="t", workspace=str(tmp_path)))
    await runtime.execute(
        RuntimeExecutionConfig(task="t", workspace=str(tmp_path), sandbox_mode="read-only")
    )

    assert engine.options[0].sandbox_mode == "danger-full-access"
    assert engine.options[0].skip_git_repo_check is True
    assert engine.options[1].sandbox_mode == "read-only"


@pytest.mark.asyncio
async def test_llm_agent_kind_is_rejected(tmp_path: Path) -> None:
    engine = _StubEngine()
    runtime = _runtime(engine)

    with pytest.raises(UnsupportedAgentKindError, match="computer"):
        await runtime.execute(
            RuntimeExecutionConfig(task="t", workspace=str(tmp_path / "w"), agent_kind="llm")
        )

    assert engine.options == []
    assert not (tmp_path / "w").exists()


@pytest.mark.asyncio
async def test_engine_errors_propagate_unchanged(tmp_path: Path) -> None:
    runtime = _runtime(_FailingEngine())

    with pytest.raises(EngineExecutionError, match="engine exploded"):
        await runtime.execute(RuntimeExecutionConfig(task="t", workspace=str(tmp_path)))


@pytest.mark.asyncio
async def test_session_continuity_and_cleanup(tmp_path: Path) -> None:
    engine = _StubEngine()
    runtime = _runtime(engine)

    first = await runtime.execute(RuntimeExecutionConfig(task="one", workspace=str(tmp_path)))
    await runtime.execute(
        RuntimeExecutionConfig(task="two", workspace=str(tmp_path), session_id=first.session_id)
    )
    assert engine.resumed == []
    assert len(engine.options) == 1

    await runtime.cleanup()
    assert dict(runtime.client.thread_cache) == {}

    await runtime.execute(
        RuntimeExecutionConfig(task="three", workspace=str(tmp_path), session_id=first.session_id)
    )
    assert engine.resumed == ["t1"]
