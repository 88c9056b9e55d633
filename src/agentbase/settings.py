"""Global settings for runtime selection and execution defaults."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SANDBOX_MODES: tuple[str, ...] = ("read-only", "workspace-write", "danger-full-access")


class RuntimeSettings(BaseSettings):
    """Environment-driven configuration for local and cloud runtimes."""

    model_config = SettingsConfigDict(
        env_prefix="AGENTBASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    API_KEY: str | None = Field(
        default=None,
        description="Bearer credential for the remote execution service.",
    )
    API_URL: str = Field(
        default="http://localhost:8080",
        description="Base URL of the remote execution service (POST /execute).",
    )
    REQUEST_TIMEOUT_SEC: float = Field(
        default=600.0,
        description="Wall-clock bound for one remote execution call.",
    )
    WORKSPACE_BUCKET: str = Field(
        default="agentbase-workspaces",
        description="Object-store bucket holding workspace mirrors.",
    )
    GSUTIL_BINARY: str = Field(
        default="gsutil",
        description="Storage sync utility invoked for workspace upload/download.",
    )
    SYNC_TIMEOUT_SEC: float = Field(
        default=300.0,
        description="Per-operation ceiling for one sync subprocess.",
    )
    SYNC_MAX_ATTEMPTS: int = Field(
        default=3,
        description="Attempts per sync operation before giving up.",
    )
    SYNC_INITIAL_DELAY_SEC: float = Field(
        default=1.0,
        description="Backoff before the second sync attempt; doubles afterwards.",
    )
    CODEX_BINARY: str = Field(
        default="codex",
        description="Codex CLI binary used by the local execution engine.",
    )
    CODEX_TIMEOUT_SEC: float = Field(
        default=1800.0,
        description="Timeout for a single Codex turn.",
    )
    CODEX_CONFIG_PATH: str = Field(
        default=str(Path.home() / ".codex" / "config.toml"),
        description="Base Codex config merged with injected model/MCP settings.",
    )
    SANDBOX_MODE: str = Field(
        default="danger-full-access",
        description="Default Codex sandbox mode for local execution (--sandbox value).",
    )
    SKIP_GIT_REPO_CHECK: bool = Field(
        default=True,
        description="Allow Codex to run in directories that are not git repositories.",
    )
    SESSIONS_DIR: str = Field(
        default=".agentbase/sessions",
        description="Directory for storing session record JSON files.",
    )

    @model_validator(mode="after")
    def validate_values(self) -> "RuntimeSettings":
        """Normalize sandbox mode and reject non-positive bounds."""
        normalized = self.SANDBOX_MODE.strip().lower()
        if normalized not in SANDBOX_MODES:
            raise ValueError(
                f"AGENTBASE_SANDBOX_MODE must be one of {', '.join(SANDBOX_MODES)}"
            )
        object.__setattr__(self, "SANDBOX_MODE", normalized)

        for name in ("REQUEST_TIMEOUT_SEC", "SYNC_TIMEOUT_SEC", "CODEX_TIMEOUT_SEC"):
            if getattr(self, name) <= 0:
                raise ValueError(f"AGENTBASE_{name} must be positive")
        if self.SYNC_MAX_ATTEMPTS < 1:
            raise ValueError("AGENTBASE_SYNC_MAX_ATTEMPTS must be at least 1")

        object.__setattr__(self, "API_URL", self.API_URL.rstrip("/"))
        return self


@lru_cache
def get_runtime_settings() -> RuntimeSettings:
    """Return cached runtime settings."""
    return RuntimeSettings()


__all__ = ["SANDBOX_MODES", "RuntimeSettings", "get_runtime_settings"]
