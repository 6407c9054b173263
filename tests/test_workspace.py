"""
Tests for the per-workspace store registry.
"""

import os

import pytest

from ai_bookmarks.exceptions import WorkspaceNotFoundError
from ai_bookmarks.workspace import WorkspaceManager, normalize_workspace_path


@pytest.fixture
def workspaces(tmp_path):
    (tmp_path / "a").mkdir()
    (tmp_path / "b").mkdir()
    return WorkspaceManager(str(tmp_path / "a"))


def test_normalize_workspace_path():
    assert normalize_workspace_path("/x/y/") == "/x/y"
    assert normalize_workspace_path("/x/./y/../z") == "/x/z"
    assert normalize_workspace_path("/") == "/"


class TestWorkspaceManager:
    def test_default_store(self, workspaces, tmp_path):
        store = workspaces.get_store()
        assert store.workspace_root == str(tmp_path / "a")

    def test_same_store_for_equivalent_paths(self, workspaces, tmp_path):
        first = workspaces.get_store(str(tmp_path / "b"))
        second = workspaces.get_store(str(tmp_path / "b") + os.sep)
        assert first is second

    def test_relative_root_resolves_against_default(self, workspaces, tmp_path):
        assert workspaces.resolve_workspace("../b") == str(tmp_path / "b")

    def test_missing_workspace(self, workspaces, tmp_path):
        with pytest.raises(WorkspaceNotFoundError):
            workspaces.get_store(str(tmp_path / "missing"))

    def test_stores_are_isolated(self, workspaces, tmp_path):
        workspaces.get_store().create_group("in a")
        assert workspaces.get_store(str(tmp_path / "b")).list_groups() == []

    def test_active_workspaces(self, workspaces, tmp_path):
        workspaces.get_store()
        workspaces.get_store(str(tmp_path / "b"))
        assert workspaces.list_active_workspaces() == [str(tmp_path / "a"), str(tmp_path / "b")]
        assert len(workspaces.stores()) == 2

    def test_dispose_workspace(self, workspaces, tmp_path):
        first = workspaces.get_store(str(tmp_path / "b"))
        assert workspaces.dispose_workspace(str(tmp_path / "b"))
        assert not workspaces.dispose_workspace(str(tmp_path / "b"))
        assert workspaces.get_store(str(tmp_path / "b")) is not first

    def test_dispose_all(self, workspaces):
        workspaces.get_store()
        workspaces.dispose()
        assert workspaces.list_active_workspaces() == []

    def test_custom_store_location(self, tmp_path):
        workspaces = WorkspaceManager(str(tmp_path), store_dir=".data", store_file_name="marks.json")
        assert workspaces.get_store().store_path == tmp_path / ".data" / "marks.json"

    def test_change_default(self, workspaces, tmp_path):
        workspaces.default_workspace = str(tmp_path / "b")
        assert workspaces.get_store().workspace_root == str(tmp_path / "b")
