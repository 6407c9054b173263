"""Registry of bookmark stores, one per workspace.

Used by the tool server so a single process can serve several projects; each
tool call may name a ``projectRoot`` and is routed to that workspace's store.
"""

import logging
import os
from typing import Optional

from .config import BookmarksConfig
from .exceptions import WorkspaceNotFoundError
from .storage import DEFAULT_STORE_DIR, DEFAULT_STORE_FILE_NAME, StoreFile
from .store import BookmarkStoreManager

logger = logging.getLogger(__name__)


def normalize_workspace_path(path: str) -> str:
    """Normalised absolute form used as the registry key (no trailing separator)."""
    normalized = os.path.normpath(path)
    if len(normalized) > 1:
        normalized = normalized.rstrip("/\\")
    return normalized


class WorkspaceManager:
    """Creates stores lazily and keeps them keyed by normalised root path."""

    def __init__(
        self,
        default_workspace: Optional[str] = None,
        store_dir: str = DEFAULT_STORE_DIR,
        store_file_name: str = DEFAULT_STORE_FILE_NAME,
    ):
        self._stores: dict[str, BookmarkStoreManager] = {}
        self._default_workspace = normalize_workspace_path(
            os.path.abspath(default_workspace or os.getcwd())
        )
        self.store_dir = store_dir
        self.store_file_name = store_file_name

    @classmethod
    def from_config(cls, config: BookmarksConfig) -> "WorkspaceManager":
        return cls(
            default_workspace=config.workspace_root,
            store_dir=config.store_dir,
            store_file_name=config.store_file_name,
        )

    @property
    def default_workspace(self) -> str:
        return self._default_workspace

    @default_workspace.setter
    def default_workspace(self, workspace: str) -> None:
        self._default_workspace = normalize_workspace_path(os.path.abspath(workspace))

    def resolve_workspace(self, project_root: Optional[str] = None) -> str:
        """Absolute, normalised workspace path; relative roots resolve against the default."""
        if not project_root:
            return self._default_workspace
        if os.path.isabs(project_root):
            return normalize_workspace_path(project_root)
        return normalize_workspace_path(os.path.join(self._default_workspace, project_root))

    def get_store(self, project_root: Optional[str] = None) -> BookmarkStoreManager:
        """Return the store for a workspace, creating it on first use.

        Raises:
            WorkspaceNotFoundError: If the workspace directory does not exist
        """
        workspace = self.resolve_workspace(project_root)

        store = self._stores.get(workspace)
        if store is None:
            if not os.path.isdir(workspace):
                raise WorkspaceNotFoundError(f"Workspace does not exist: {workspace}")

            store_file = StoreFile(workspace, self.store_dir, self.store_file_name)
            store = BookmarkStoreManager(workspace, store_file=store_file)
            self._stores[workspace] = store
            logger.debug("Opened bookmark store for %s", workspace)

        return store

    def stores(self) -> list[BookmarkStoreManager]:
        return list(self._stores.values())

    def list_active_workspaces(self) -> list[str]:
        return list(self._stores.keys())

    def dispose_workspace(self, workspace: str) -> bool:
        store = self._stores.pop(self.resolve_workspace(workspace), None)
        if store is None:
            return False
        store.dispose()
        return True

    def dispose(self) -> None:
        for store in self._stores.values():
            store.dispose()
        self._stores.clear()
