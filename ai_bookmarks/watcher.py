"""Store file watching by polling.

Detects edits made to the store file by other processes (another editor
window, a second server, a human with a text editor). The store records the
signature of its own writes via ``mark_synced`` so it does not react to them.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING, Optional

from .storage import StoreFile

if TYPE_CHECKING:
    from .workspace import WorkspaceManager

logger = logging.getLogger(__name__)


class StoreFileEvent(str, Enum):
    CREATED = "created"
    CHANGED = "changed"
    DELETED = "deleted"


class StoreFileWatcher:
    """Compare the store file's (mtime, size) signature between polls."""

    def __init__(self, store_file: StoreFile) -> None:
        self.store_file = store_file
        self._signature = store_file.signature()

    def mark_synced(self) -> None:
        """Accept the current file state as already known."""
        self._signature = self.store_file.signature()

    def poll(self) -> Optional[StoreFileEvent]:
        """Return what happened to the file since the last poll, if anything."""
        current = self.store_file.signature()
        previous = self._signature
        if current == previous:
            return None

        self._signature = current
        if current is None:
            return StoreFileEvent.DELETED
        if previous is None:
            return StoreFileEvent.CREATED
        return StoreFileEvent.CHANGED


async def watch_workspaces(
    workspaces: "WorkspaceManager", interval: float = 1.0
) -> None:
    """Poll every active workspace store until cancelled."""
    while True:
        for store in workspaces.stores():
            try:
                store.poll_store_file()
            except OSError as e:
                logger.warning("Failed to poll %s: %s", store.store_path, e)
        await asyncio.sleep(interval)
