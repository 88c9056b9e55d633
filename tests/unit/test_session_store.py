from __future__ import annotations

import json
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from agentbase.storage.session_store import SessionRecord, SessionStore, create_session_record


def test_upsert_and_list(tmp_path: Path) -> None:
    store = SessionStore(base_dir=tmp_path)
    record = create_session_record(
        runtime="local",
        workspace="/work/repo",
        session_id="sess-1",
        extra={"model": "gpt-5-codex"},
    )

    store.upsert(record)

    sessions = store.list("local")
    assert len(sessions) == 1
    assert sessions[0].session_id == "sess-1"
    assert sessions[0].extra == {"model": "gpt-5-codex"}
    assert (tmp_path / "local.json").exists()


def test_upsert_keeps_created_at_and_merges_extra(tmp_path: Path) -> None:
    store = SessionStore(base_dir=tmp_path)
    first = create_session_record(
        runtime="cloud",
        workspace="/w",
        session_id="s",
        workspace_id="w-123",
        extra={"a": 1},
    )
    store.upsert(first)

    later = SessionRecord(
        runtime="cloud",
        workspace="/w",
        session_id="s",
        created_at=first.created_at + 100,
        last_used=first.last_used + 100,
        extra={"b": 2},
    )
    merged = store.upsert(later)

    assert merged.created_at == first.created_at
    assert merged.last_used == first.last_used + 100
    assert merged.workspace_id == "w-123"
    assert merged.extra == {"a": 1, "b": 2}
    assert len(store.list("cloud")) == 1


def test_resolve_last_filters_by_workspace(tmp_path: Path) -> None:
    store = SessionStore(base_dir=tmp_path)
    now = time.time()
    for index, workspace in enumerate(["/a", "/b", "/a"]):
        store.upsert(
            SessionRecord(
                runtime="local",
                workspace=workspace,
                session_id=f"s{index}",
                created_at=now + index,
                last_used=now + index,
            )
        )

    assert store.resolve_last("local").session_id == "s2"
    assert store.resolve_last("local", "/b").session_id == "s1"
    assert store.resolve_last("local", "/c") is None
    assert store.resolve_last("cloud") is None


def test_list_all_runtimes_sorted_by_last_used(tmp_path: Path) -> None:
    store = SessionStore(base_dir=tmp_path)
    store.upsert(SessionRecord("local", "/a", "old", 1.0, 1.0))
    store.upsert(SessionRecord("cloud", "/a", "new", 2.0, 2.0))

    assert [record.session_id for record in store.list()] == ["new", "old"]


def test_corrupt_file_is_ignored(tmp_path: Path) -> None:
    (tmp_path / "local.json").write_text("{not json", encoding="utf-8")
    (tmp_path / "cloud.json").write_text(
        json.dumps({"x": {"runtime": "cloud"}, "y": {"runtime": "cloud", "workspace": "/w", "session_id": "y", "created_at": 1, "last_used": 1}}),
        encoding="utf-8",
    )
    store = SessionStore(base_dir=tmp_path)

    assert store.list("local") == []
    assert [record.session_id for record in store.list("cloud")] == ["y"]


def test_parallel_upserts_preserve_all_sessions(tmp_path: Path) -> None:
    stores = [SessionStore(base_dir=tmp_path) for _ in range(4)]

    def write(index: int) -> None:
        stores[index % len(stores)].upsert(
            create_session_record(runtime="local", workspace="/w", session_id=f"sess-{index}")
        )

    with ThreadPoolExecutor(max_workers=4) as pool:
        list(pool.map(write, range(20)))

    assert {record.session_id for record in SessionStore(base_dir=tmp_path).list("local")} == {
        f"sess-{index}" for index in range(20)
    }


def test_default_directory_comes_from_settings(tmp_path: Path) -> None:
    store = SessionStore()
    assert store.root == (tmp_path / "sessions").resolve()
