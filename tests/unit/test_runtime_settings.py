from __future__ import annotations

import pytest
from pydantic import ValidationError

from agentbase.errors import ConfigurationError
from agentbase.runtime import LocalRuntime, RemoteRuntime, create_runtime
from agentbase.settings import RuntimeSettings, get_runtime_settings


def test_defaults() -> None:
    settings = RuntimeSettings()

    assert settings.API_KEY is None
    assert settings.API_URL == "http://localhost:8080"
    assert settings.REQUEST_TIMEOUT_SEC == 600
    assert settings.SYNC_TIMEOUT_SEC == 300
    assert settings.SYNC_MAX_ATTEMPTS == 3
    assert settings.SYNC_INITIAL_DELAY_SEC == 1.0
    assert settings.SANDBOX_MODE == "danger-full-access"
    assert settings.SKIP_GIT_REPO_CHECK is True


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AGENTBASE_API_URL", "https://exec.example.com/")
    monkeypatch.setenv("AGENTBASE_SANDBOX_MODE", " Workspace-Write ")
    monkeypatch.setenv("AGENTBASE_SYNC_MAX_ATTEMPTS", "5")

    settings = get_runtime_settings()

    assert settings.API_URL == "https://exec.example.com"
    assert settings.SANDBOX_MODE == "workspace-write"
    assert settings.SYNC_MAX_ATTEMPTS == 5
    assert get_runtime_settings() is settings


def test_invalid_sandbox_mode_is_rejected() -> None:
    with pytest.raises(ValidationError, match="SANDBOX_MODE"):
        RuntimeSettings(SANDBOX_MODE="yolo")


@pytest.mark.parametrize(
    "overrides",
    [{"REQUEST_TIMEOUT_SEC": 0}, {"SYNC_TIMEOUT_SEC": -1}, {"SYNC_MAX_ATTEMPTS": 0}],
)
def test_invalid_bounds_are_rejected(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        RuntimeSettings(**overrides)


def test_create_runtime_local_uses_settings() -> None:
    runtime = create_runtime(
        "local", settings=RuntimeSettings(SANDBOX_MODE="workspace-write", SKIP_GIT_REPO_CHECK=False)
    )

    assert isinstance(runtime, LocalRuntime)
    assert runtime.sandbox_mode == "workspace-write"
    assert runtime.skip_git_repo_check is False


def test_create_runtime_cloud_with_overrides() -> None:
    runtime = create_runtime(
        "Cloud",
        settings=RuntimeSettings(API_KEY="k", REQUEST_TIMEOUT_SEC=30),
        skip_workspace_sync=True,
    )

    assert isinstance(runtime, RemoteRuntime)
    assert runtime.timeout_sec == 30
    assert runtime.skip_workspace_sync is True


def test_create_runtime_cloud_without_key_fails() -> None:
    with pytest.raises(ConfigurationError):
        create_runtime("cloud", settings=RuntimeSettings())


def test_create_runtime_unknown_kind() -> None:
    with pytest.raises(ConfigurationError, match="Unknown runtime"):
        create_runtime("gpu")
