"""Runtime construction from settings."""

from __future__ import annotations

from typing import Any, Optional

from agentbase.codex.client import CodexClient
from agentbase.errors import ConfigurationError
from agentbase.runtime.base import Runtime, RuntimeKind
from agentbase.runtime.local import LocalRuntime
from agentbase.runtime.remote import RemoteRuntime
from agentbase.settings import RuntimeSettings, get_runtime_settings

RUNTIME_KINDS: tuple[RuntimeKind, ...] = ("local", "cloud")


def create_runtime(
    kind: str,
    *,
    settings: Optional[RuntimeSettings] = None,
    **overrides: Any,
) -> Runtime:
    """Build a runtime of ``kind`` ("local" or "cloud").

    ``overrides`` are passed to the runtime constructor and take precedence
    over values derived from settings.
    """
    resolved = settings or get_runtime_settings()
    normalized = kind.strip().lower()

    if normalized == "local":
        options: dict[str, Any] = {
            "skip_git_repo_check": resolved.SKIP_GIT_REPO_CHECK,
            "sandbox_mode": resolved.SANDBOX_MODE,
        }
        options.update(overrides)
        client = options.pop("client", None) or CodexClient(settings=resolved)
        return LocalRuntime(client, **options)

    if normalized == "cloud":
        return RemoteRuntime(settings=resolved, **overrides)

    raise ConfigurationError(
        f"Unknown runtime '{kind}'",
        hint=f"Choose one of: {', '.join(RUNTIME_KINDS)}",
    )


__all__ = ["RUNTIME_KINDS", "create_runtime"]
