"""Filesystem persistence of runtime session ids.

Thread caches live only as long as their client. Recording the session id
returned by a runtime lets a later process resume the same conversation
through a fresh runtime instance.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import threading
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Iterator, Optional

try:  # pragma: win32-no-cover - imported lazily for Windows
    import msvcrt
except ImportError:  # pragma: no cover - non-Windows platforms
    msvcrt = None  # type: ignore[assignment]

try:  # pragma: posix-no-cover - imported lazily for POSIX
    import fcntl
except ImportError:  # pragma: no cover - non-POSIX platforms
    fcntl = None  # type: ignore[assignment]

from agentbase.settings import get_runtime_settings

logger = logging.getLogger(__name__)

_ROOT_LOCKS: dict[str, threading.RLock] = {}
_ROOT_LOCKS_GUARD = threading.Lock()


@dataclass(slots=True)
class SessionRecord:
    """A session id returned by a runtime for one workspace."""

    runtime: str
    workspace: str
    session_id: str
    created_at: float
    last_used: float
    workspace_id: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)


def _root_lock(root: Path) -> threading.RLock:
    key = str(root)
    with _ROOT_LOCKS_GUARD:
        return _ROOT_LOCKS.setdefault(key, threading.RLock())


@contextlib.contextmanager
def _file_lock(path: Path) -> Iterator[None]:
    """Exclusive lock on ``path`` shared with other processes."""
    with path.open("a+b") as handle:
        if fcntl is not None:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
        elif msvcrt is not None:
            handle.seek(0)
            msvcrt.locking(handle.fileno(), msvcrt.LK_LOCK, 1)
        try:
            yield
        finally:
            if fcntl is not None:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
            elif msvcrt is not None:
                handle.seek(0)
                msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)


class SessionStore:
    """One JSON file per runtime kind, keyed by session id."""

    def __init__(self, base_dir: Path | None = None) -> None:
        root = base_dir or Path(get_runtime_settings().SESSIONS_DIR)
        self._root = root.resolve()
        self._root.mkdir(parents=True, exist_ok=True)
        self._lock = _root_lock(self._root)
        self._lock_path = self._root / ".sessions.lock"

    @property
    def root(self) -> Path:
        return self._root

    @contextlib.contextmanager
    def _locked(self) -> Iterator[None]:
        with self._lock, _file_lock(self._lock_path):
            yield

    def _path_for(self, runtime: str) -> Path:
        return self._root / f"{runtime}.json"

    def _read(self, runtime: str) -> dict[str, SessionRecord]:
        path = self._path_for(runtime)
        if not path.exists():
            return {}
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Ignoring corrupt session file %s", path)
            return {}
        if not isinstance(raw, dict):
            return {}

        records: dict[str, SessionRecord] = {}
        for key, value in raw.items():
            try:
                records[key] = SessionRecord(
                    runtime=str(value["runtime"]),
                    workspace=str(value["workspace"]),
                    session_id=str(value["session_id"]),
                    created_at=float(value["created_at"]),
                    last_used=float(value["last_used"]),
                    workspace_id=value.get("workspace_id"),
                    extra=dict(value.get("extra") or {}),
                )
            except (KeyError, TypeError, ValueError):
                continue
        return records

    def _write(self, runtime: str, records: dict[str, SessionRecord]) -> None:
        path = self._path_for(runtime)
        payload = {key: asdict(record) for key, record in records.items()}
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp_path, path)

    def upsert(self, record: SessionRecord) -> SessionRecord:
        """Insert or refresh a record; ``created_at`` and ``extra`` keys survive updates."""
        with self._locked():
            records = self._read(record.runtime)
            existing = records.get(record.session_id)
            if existing is not None:
                extra = {**existing.extra, **record.extra}
                record = SessionRecord(
                    runtime=record.runtime,
                    workspace=record.workspace,
                    session_id=record.session_id,
                    created_at=existing.created_at,
                    last_used=record.last_used,
                    workspace_id=record.workspace_id or existing.workspace_id,
                    extra=extra,
                )
            records[record.session_id] = record
            self._write(record.runtime, records)
        return record

    def list(self, runtime: str | None = None) -> list[SessionRecord]:
        """Records for one runtime kind, or all kinds, most recently used first."""
        with self._locked():
            if runtime is not None:
                records = list(self._read(runtime).values())
            else:
                records = []
                for path in sorted(self._root.glob("*.json")):
                    records.extend(self._read(path.stem).values())
        return sorted(records, key=lambda item: item.last_used, reverse=True)

    def resolve_last(self, runtime: str, workspace: str | None = None) -> Optional[SessionRecord]:
        """Most recently used record for ``runtime``, optionally for one workspace."""
        for record in self.list(runtime):
            if workspace is None or record.workspace == workspace:
                return record
        return None


def create_session_record(
    *,
    runtime: str,
    workspace: str,
    session_id: str,
    workspace_id: str | None = None,
    extra: dict[str, Any] | None = None,
) -> SessionRecord:
    now = time.time()
    return SessionRecord(
        runtime=runtime,
        workspace=workspace,
        session_id=session_id,
        created_at=now,
        last_used=now,
        workspace_id=workspace_id,
        extra=dict(extra or {}),
    )


__all__ = ["SessionRecord", "SessionStore", "create_session_record"]
