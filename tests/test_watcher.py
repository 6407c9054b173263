"""
Tests for polling the store file for external changes.
"""

import asyncio
import json
import os

import pytest

from ai_bookmarks.models import create_default_store
from ai_bookmarks.storage import StoreFile
from ai_bookmarks.watcher import StoreFileEvent, StoreFileWatcher, watch_workspaces
from ai_bookmarks.workspace import WorkspaceManager


@pytest.fixture
def store_file(tmp_path):
    return StoreFile(tmp_path)


def bump_mtime(path):
    stat = path.stat()
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000_000))


class TestStoreFileWatcher:
    def test_no_file_no_event(self, store_file):
        watcher = StoreFileWatcher(store_file)
        assert watcher.poll() is None

    def test_created(self, store_file):
        watcher = StoreFileWatcher(store_file)
        store_file.save(create_default_store("p"))
        assert watcher.poll() == StoreFileEvent.CREATED
        assert watcher.poll() is None

    def test_changed(self, store_file):
        store_file.save(create_default_store("p"))
        watcher = StoreFileWatcher(store_file)

        store_file.save(create_default_store("renamed project"))
        bump_mtime(store_file.path)

        assert watcher.poll() == StoreFileEvent.CHANGED

    def test_deleted(self, store_file):
        store_file.save(create_default_store("p"))
        watcher = StoreFileWatcher(store_file)
        store_file.path.unlink()
        assert watcher.poll() == StoreFileEvent.DELETED

    def test_mark_synced_ignores_own_write(self, store_file):
        watcher = StoreFileWatcher(store_file)
        store_file.save(create_default_store("p"))
        watcher.mark_synced()
        assert watcher.poll() is None


class TestWatchWorkspaces:
    @pytest.mark.asyncio
    async def test_reloads_changed_store(self, tmp_path):
        workspaces = WorkspaceManager(str(tmp_path))
        store = workspaces.get_store()
        store.create_group("Before")

        document = json.loads(store.store_path.read_text(encoding="utf-8"))
        document["groups"][0]["name"] = "After an external edit"
        store.store_path.write_text(json.dumps(document), encoding="utf-8")
        bump_mtime(store.store_path)

        task = asyncio.create_task(watch_workspaces(workspaces, interval=0.01))
        try:
            for _ in range(100):
                if store.list_groups()[0].name != "Before":
                    break
                await asyncio.sleep(0.01)
        finally:
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        assert store.list_groups()[0].name == "After an external edit"
