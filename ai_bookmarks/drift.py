"""Keep bookmarks attached to their code while a file is being edited.

Editors report changes as a replaced range plus the new text. Each change is
turned into a single-point ``LineEdit`` and all edits of one event are handed
to the store together, so the store file is written once per event.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from .location import LineEdit
from .store import BookmarkStoreManager

logger = logging.getLogger(__name__)


async def read_file_content(path: str) -> Optional[str]:
    """Content fetcher for validity checks: the file's text, or None if it is missing."""

    def read() -> Optional[str]:
        file_path = Path(path)
        if not file_path.is_file():
            return None
        return file_path.read_text(encoding="utf-8", errors="replace")

    return await asyncio.to_thread(read)


@dataclass(frozen=True)
class TextChange:
    """A content change as reported by an editor.

    ``start_line`` and ``end_line`` are the 0-indexed lines of the replaced
    range; ``text`` is what replaced it.
    """

    start_line: int
    end_line: int
    text: str

    def to_line_edit(self) -> LineEdit:
        old_line_count = self.end_line - self.start_line + 1
        new_line_count = self.text.count("\n") + 1
        return LineEdit(self.start_line + 1, new_line_count - old_line_count)


def line_edits_from_changes(changes: Iterable[TextChange]) -> list[LineEdit]:
    """Edits that change the line count, in reported order."""
    edits = [change.to_line_edit() for change in changes]
    return [edit for edit in edits if edit.line_delta != 0]


class DriftHandler:
    """Feeds document changes into a store's line adjustment."""

    def __init__(self, store: BookmarkStoreManager) -> None:
        self.store = store

    def handle_document_change(self, file_path: str, changes: Iterable[TextChange]) -> int:
        """Adjust bookmarks in ``file_path`` for one editor change event.

        Returns:
            Number of bookmarks that moved.
        """
        edits = line_edits_from_changes(changes)
        if not edits:
            return 0

        moved = self.store.adjust_bookmarks_for_edits(file_path, edits)
        if moved:
            logger.debug("%d bookmark(s) drifted in %s", moved, file_path)
        return moved
