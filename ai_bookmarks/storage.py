"""
JSON file persistence for the bookmark store.

One pretty-printed UTF-8 JSON document per workspace. Writes go through a
temporary file and an atomic rename so readers never see a half-written store.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from .exceptions import BookmarkStorageError
from .models import BookmarkStore, create_default_store

logger = logging.getLogger(__name__)

DEFAULT_STORE_DIR = ".vscode"
DEFAULT_STORE_FILE_NAME = "ai-bookmarks.json"

FileSignature = tuple[int, int]


class StoreFile:
    """
    Reads and writes the store document for a single workspace.

    Missing or corrupt files load as a fresh default store; the file on disk
    is only touched by ``save``.
    """

    def __init__(
        self,
        workspace_root: str | Path,
        store_dir: str = DEFAULT_STORE_DIR,
        file_name: str = DEFAULT_STORE_FILE_NAME,
    ):
        """
        Initialize the store file.

        Args:
            workspace_root: Root directory of the workspace
            store_dir: Directory (relative to the root) holding the store file
            file_name: Name of the store file
        """
        self.workspace_root = Path(workspace_root)
        self.path = self.workspace_root / store_dir / file_name

    @property
    def default_project_name(self) -> str:
        return self.workspace_root.name

    def exists(self) -> bool:
        return self.path.is_file()

    def signature(self) -> Optional[FileSignature]:
        """(mtime_ns, size) of the store file, or None when it does not exist."""
        try:
            stat = self.path.stat()
        except (FileNotFoundError, NotADirectoryError):
            return None
        return (stat.st_mtime_ns, stat.st_size)

    def load(self) -> BookmarkStore:
        """
        Load the store from disk.

        Returns:
            The persisted store, or a default store when the file is missing,
            unreadable or malformed.
        """
        if not self.exists():
            return create_default_store(self.default_project_name)

        try:
            content = self.path.read_text(encoding="utf-8")
            return BookmarkStore.from_dict(json.loads(content))
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Failed to read bookmark store %s: %s", self.path, e)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.error("Bookmark store %s is malformed: %s", self.path, e)

        return create_default_store(self.default_project_name)

    def save(self, store: BookmarkStore) -> None:
        """
        Write the store atomically, creating the store directory if needed.

        Raises:
            BookmarkStorageError: If writing fails
        """
        content = json.dumps(store.to_dict(), indent=2, ensure_ascii=False)

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)

            fd, temp_path = tempfile.mkstemp(
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                text=True,
            )

            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(content)
                    f.flush()
                    os.fsync(f.fileno())

                os.replace(temp_path, self.path)
            except Exception:
                try:
                    os.unlink(temp_path)
                except OSError:
                    pass
                raise

        except Exception as e:
            raise BookmarkStorageError(f"Failed to write {self.path}: {e}") from e
