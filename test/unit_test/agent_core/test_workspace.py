from __future__ import annotations

import os
from pathlib import Path

import pytest

from latch_agent.agent_core.errors import WorkspaceError
from latch_agent.agent_core.workspace import (
    WorkspaceManager,
    is_path_under_root,
    resolve_candidate,
)


def test_is_path_under_root_equal_and_nested(workspace: Path) -> None:
    assert is_path_under_root(workspace, workspace)
    assert is_path_under_root(workspace / "docs" / "notes.md", workspace)
    assert is_path_under_root(workspace / "not-yet-created.txt", workspace)


def test_is_path_under_root_rejects_prefix_sibling(tmp_path: Path) -> None:
    (tmp_path / "work").mkdir()
    (tmp_path / "workspace").mkdir()
    assert not is_path_under_root(tmp_path / "workspace", tmp_path / "work")


def test_is_path_under_root_resolves_dot_dot(workspace: Path) -> None:
    assert not is_path_under_root(workspace / "docs" / ".." / "..", workspace)


def test_is_path_under_root_follows_symlinks(workspace: Path, outside_dir: Path) -> None:
    os.symlink(outside_dir, workspace / "escape")
    assert not is_path_under_root(workspace / "escape" / "secret.txt", workspace)
    os.symlink(workspace / "docs", workspace / "inner")
    assert is_path_under_root(workspace / "inner" / "notes.md", workspace)


def test_resolve_candidate_joins_relative_paths(workspace: Path) -> None:
    assert resolve_candidate("docs/notes.md", workspace) == workspace / "docs" / "notes.md"
    assert resolve_candidate("/etc/hosts", workspace) == Path("/etc/hosts")


def test_set_and_get_root_round_trip(tmp_path: Path, workspace: Path) -> None:
    mgr = WorkspaceManager(tmp_path / "state" / "workspace.json")
    assert mgr.get_root() is None
    assert mgr.set_root(workspace) is True
    assert mgr.get_root() == workspace
    assert mgr.state_file.exists()


def test_set_root_rejects_non_directories(tmp_path: Path, workspace: Path) -> None:
    mgr = WorkspaceManager(tmp_path / "workspace.json")
    assert mgr.set_root(workspace / "README.md") is False
    assert mgr.set_root(tmp_path / "missing") is False
    assert mgr.get_root() is None


def test_root_that_disappears_reads_as_none(tmp_path: Path) -> None:
    root = tmp_path / "gone"
    root.mkdir()
    mgr = WorkspaceManager(tmp_path / "workspace.json")
    assert mgr.set_root(root)
    root.rmdir()
    assert mgr.get_root() is None


def test_root_replaced_by_file_reads_as_none(tmp_path: Path) -> None:
    root = tmp_path / "dir"
    root.mkdir()
    mgr = WorkspaceManager(tmp_path / "workspace.json")
    assert mgr.set_root(root)
    root.rmdir()
    root.write_text("now a file", encoding="utf-8")
    assert mgr.get_root() is None


@pytest.mark.parametrize("content", ["", "{", "[]", '{"root": 5}', '{"root": "relative/dir"}', '{"other": "x"}'])
def test_corrupt_state_reads_as_none(tmp_path: Path, content: str) -> None:
    state = tmp_path / "workspace.json"
    state.write_text(content, encoding="utf-8")
    assert WorkspaceManager(state).get_root() is None


def test_clear_root(tmp_path: Path, workspace: Path) -> None:
    mgr = WorkspaceManager(tmp_path / "workspace.json")
    mgr.set_root(workspace)
    mgr.clear_root()
    assert mgr.get_root() is None
    mgr.clear_root()


def test_is_under_workspace(tmp_path: Path, workspace: Path, outside_dir: Path) -> None:
    mgr = WorkspaceManager(tmp_path / "workspace.json")
    assert mgr.is_under_workspace("README.md") is False
    mgr.set_root(workspace)
    assert mgr.is_under_workspace("README.md") is True
    assert mgr.is_under_workspace(outside_dir / "secret.txt") is False


def test_set_root_raises_when_state_cannot_be_written(tmp_path: Path, workspace: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory", encoding="utf-8")
    mgr = WorkspaceManager(blocker / "workspace.json")
    with pytest.raises(WorkspaceError):
        mgr.set_root(workspace)
