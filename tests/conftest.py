"""Pytest configuration helpers."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest


@pytest.fixture(autouse=True)
def reset_runtime_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Isolate tests from the caller's environment and cached settings."""
    from agentbase import settings

    for name in ("AGENTBASE_API_KEY", "AGENTBASE_API_URL", "AGENTBASE_SANDBOX_MODE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("AGENTBASE_SESSIONS_DIR", str(tmp_path / "sessions"))

    settings.get_runtime_settings.cache_clear()
    try:
        yield
    finally:
        settings.get_runtime_settings.cache_clear()
