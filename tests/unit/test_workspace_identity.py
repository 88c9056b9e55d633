from __future__ import annotations

import os
import re
from pathlib import Path

import pytest

from agentbase.workspace.identity import (
    canonical_workspace_path,
    cloud_workspace_id,
    slugify,
    workspace_id,
)


def test_workspace_id_is_deterministic(tmp_path: Path) -> None:
    path = str(tmp_path / "my-repo")
    assert workspace_id(path) == workspace_id(path)


def test_workspace_id_format(tmp_path: Path) -> None:
    identifier = workspace_id(tmp_path / "My Project_v2")
    assert re.fullmatch(r"my-project-v2-[0-9a-f]{16}", identifier)


def test_relative_and_absolute_paths_agree(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    (tmp_path / "repo").mkdir()
    monkeypatch.chdir(tmp_path)

    assert workspace_id("repo") == workspace_id(str(tmp_path / "repo"))
    assert workspace_id("./repo/../repo") == workspace_id(str(tmp_path / "repo"))


def test_distinct_paths_do_not_collide(tmp_path: Path) -> None:
    identifiers = {workspace_id(tmp_path / f"ws-{index}") for index in range(500)}
    assert len(identifiers) == 500


def test_same_basename_in_different_parents_differs(tmp_path: Path) -> None:
    first = workspace_id(tmp_path / "a" / "repo")
    second = workspace_id(tmp_path / "b" / "repo")
    assert first.startswith("repo-")
    assert second.startswith("repo-")
    assert first != second


def test_workspace_id_does_not_touch_filesystem(tmp_path: Path) -> None:
    missing = tmp_path / "never-created"
    workspace_id(missing)
    assert not missing.exists()


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("Repo", "repo"),
        ("my_repo.git", "my-repo-git"),
        ("--weird__name--", "weird-name"),
        ("ünïcode", "n-code"),
        ("...", ""),
    ],
)
def test_slugify(name: str, expected: str) -> None:
    assert slugify(name) == expected


def test_canonical_workspace_path_is_absolute() -> None:
    assert os.path.isabs(canonical_workspace_path("relative/dir"))


def test_cloud_workspace_id_is_fresh() -> None:
    first = cloud_workspace_id()
    second = cloud_workspace_id()
    assert re.fullmatch(r"cloud-\d{13}-[0-9a-z]{7}", first)
    assert first != second
