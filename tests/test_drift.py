"""
Tests for turning editor change events into bookmark line adjustments.
"""

import pytest

from ai_bookmarks.drift import DriftHandler, TextChange, line_edits_from_changes, read_file_content
from ai_bookmarks.location import LineEdit
from ai_bookmarks.store import BookmarkStoreManager


@pytest.fixture
def store(tmp_path):
    return BookmarkStoreManager(tmp_path)


class TestTextChange:
    def test_insert_lines(self):
        # Two new lines typed at the end of 0-indexed line 4
        change = TextChange(start_line=4, end_line=4, text="foo\nbar\n")
        assert change.to_line_edit() == LineEdit(5, 2)

    def test_delete_lines(self):
        # Lines 3..6 (0-indexed) joined into one
        change = TextChange(start_line=3, end_line=6, text="")
        assert change.to_line_edit() == LineEdit(4, -3)

    def test_in_line_edit(self):
        assert TextChange(start_line=0, end_line=0, text="x").to_line_edit() == LineEdit(1, 0)

    def test_zero_delta_edits_dropped(self):
        changes = [
            TextChange(0, 0, "typed"),
            TextChange(9, 9, "\n"),
        ]
        assert line_edits_from_changes(changes) == [LineEdit(10, 1)]


class TestDriftHandler:
    def test_moves_bookmarks(self, store):
        group_id = store.create_group("g")
        below = store.add_bookmark(group_id, "src/app.py:20-30", "below", "d")
        above = store.add_bookmark(group_id, "src/app.py:2", "above", "d")

        moved = DriftHandler(store).handle_document_change(
            "src/app.py", [TextChange(start_line=9, end_line=9, text="a\nb\nc\n")]
        )

        assert moved == 1
        assert store.get_bookmark(below).bookmark.location == "src/app.py:23-33"
        assert store.get_bookmark(above).bookmark.location == "src/app.py:2"

    def test_several_changes_one_save(self, store):
        group_id = store.create_group("g")
        bookmark_id = store.add_bookmark(group_id, "src/app.py:50", "b", "d")
        calls = []
        store.subscribe(lambda: calls.append(1))

        DriftHandler(store).handle_document_change(
            "src/app.py",
            [TextChange(0, 0, "\n\n"), TextChange(10, 14, "")],
        )

        assert store.get_bookmark(bookmark_id).bookmark.location == "src/app.py:48"
        assert calls == [1]

    def test_no_line_changes(self, store):
        calls = []
        store.subscribe(lambda: calls.append(1))
        assert DriftHandler(store).handle_document_change("a.py", [TextChange(1, 1, "x")]) == 0
        assert calls == []


class TestReadFileContent:
    @pytest.mark.asyncio
    async def test_reads_file(self, tmp_path):
        path = tmp_path / "a.py"
        path.write_text("print('hi')\n", encoding="utf-8")
        assert await read_file_content(str(path)) == "print('hi')\n"

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        assert await read_file_content(str(tmp_path / "nope.py")) is None
