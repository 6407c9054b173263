"""
Tests for the bookmark data model and its on-disk dict form.
"""

import re

import pytest

from ai_bookmarks.models import (
    Bookmark,
    BookmarkCategory,
    BookmarkGroup,
    BookmarkStore,
    create_default_store,
    now_iso,
)


def make_bookmark(id, order=1, parent_id=None, **kwargs):
    return Bookmark(
        id=id,
        order=order,
        location=kwargs.pop("location", f"src/{id}.py:1"),
        title=kwargs.pop("title", f"Bookmark {id}"),
        description=kwargs.pop("description", f"About {id}"),
        parent_id=parent_id,
        **kwargs,
    )


def make_group(bookmarks=None, **kwargs):
    return BookmarkGroup(
        id=kwargs.pop("id", "g1"),
        name=kwargs.pop("name", "Group"),
        created_at="2024-01-01T00:00:00.000Z",
        updated_at="2024-01-01T00:00:00.000Z",
        bookmarks=bookmarks or [],
        **kwargs,
    )


def test_now_iso_format():
    assert re.fullmatch(r"\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d\.\d{3}Z", now_iso())


def test_category_values():
    assert BookmarkCategory.values() == [
        "entry-point",
        "core-logic",
        "todo",
        "bug",
        "optimization",
        "explanation",
        "warning",
        "reference",
    ]


class TestBookmark:
    def test_to_dict_omits_unset_optionals(self):
        assert make_bookmark("a").to_dict() == {
            "id": "a",
            "order": 1,
            "location": "src/a.py:1",
            "title": "Bookmark a",
            "description": "About a",
        }

    def test_to_dict_camel_case(self):
        bookmark = make_bookmark(
            "b",
            parent_id="a",
            category=BookmarkCategory.BUG,
            tags=["x"],
            code_snapshot="pass",
        )
        data = bookmark.to_dict()
        assert data["category"] == "bug"
        assert data["tags"] == ["x"]
        assert data["codeSnapshot"] == "pass"
        assert data["parentId"] == "a"

    def test_round_trip(self):
        bookmark = make_bookmark(
            "b",
            order=3,
            parent_id="a",
            category=BookmarkCategory.CORE_LOGIC,
            tags=["auth", "flow"],
            code_snapshot="def login(): ...",
        )
        assert Bookmark.from_dict(bookmark.to_dict()) == bookmark

    def test_from_dict_invalid_category(self):
        with pytest.raises(ValueError):
            Bookmark.from_dict({"id": "a", "location": "a.py:1", "category": "nope"})

    def test_from_dict_tags_must_be_list(self):
        with pytest.raises(TypeError):
            Bookmark.from_dict({"id": "a", "location": "a.py:1", "tags": "x"})

    def test_from_dict_requires_location(self):
        with pytest.raises(KeyError):
            Bookmark.from_dict({"id": "a"})


class TestBookmarkGroup:
    def test_touch_updates_timestamp(self):
        group = make_group()
        group.touch()
        assert group.updated_at != "2024-01-01T00:00:00.000Z"
        assert group.created_at == "2024-01-01T00:00:00.000Z"

    def test_sort_is_stable(self):
        group = make_group([make_bookmark("a", 2), make_bookmark("b", 1), make_bookmark("c", 2)])
        group.sort_bookmarks()
        assert [b.id for b in group.bookmarks] == ["b", "a", "c"]

    def test_sort_ignores_nesting(self):
        """The collection is sorted by order alone, so children interleave with parents."""
        group = make_group(
            [
                make_bookmark("p1", 1),
                make_bookmark("p2", 2),
                make_bookmark("c1", 1, parent_id="p2"),
            ]
        )
        group.sort_bookmarks()
        assert [b.id for b in group.bookmarks] == ["p1", "c1", "p2"]

    def test_children_of(self):
        group = make_group(
            [
                make_bookmark("a", 1),
                make_bookmark("b", 1, parent_id="a"),
                make_bookmark("c", 2, parent_id="a"),
                make_bookmark("d", 2),
            ]
        )
        assert [b.id for b in group.children_of(None)] == ["a", "d"]
        assert [b.id for b in group.children_of("a")] == ["b", "c"]
        assert group.children_of("d") == []

    def test_descendants_pre_order(self):
        group = make_group(
            [
                make_bookmark("a", 1),
                make_bookmark("b", 1, parent_id="a"),
                make_bookmark("c", 1, parent_id="b"),
                make_bookmark("d", 2, parent_id="a"),
            ]
        )
        assert [b.id for b in group.descendants_of("a")] == ["b", "c", "d"]

    def test_descendants_tolerates_cycles(self):
        group = make_group(
            [
                make_bookmark("a", 1, parent_id="b"),
                make_bookmark("b", 1, parent_id="a"),
            ]
        )
        assert [b.id for b in group.descendants_of("a")] == ["b"]

    def test_to_dict_key_order(self):
        group = make_group(description="d", query="q")
        assert list(group.to_dict()) == [
            "id",
            "name",
            "description",
            "query",
            "createdAt",
            "updatedAt",
            "createdBy",
            "bookmarks",
        ]

    def test_from_dict_invalid_created_by(self):
        with pytest.raises(ValueError):
            BookmarkGroup.from_dict({"id": "g", "name": "n", "createdBy": "robot"})

    def test_round_trip(self):
        group = make_group(
            [make_bookmark("a"), make_bookmark("b", 2, parent_id="a")],
            description="desc",
            query="how does login work?",
            created_by="user",
        )
        assert BookmarkGroup.from_dict(group.to_dict()) == group


class TestBookmarkStore:
    def test_default_store(self):
        store = create_default_store("proj")
        assert store.to_dict() == {"version": 1, "projectName": "proj", "groups": []}

    def test_round_trip(self):
        store = BookmarkStore(
            project_name="proj",
            groups=[make_group([make_bookmark("a")]), make_group(id="g2", name="Other")],
        )
        assert BookmarkStore.from_dict(store.to_dict()) == store

    def test_bookmark_count(self):
        store = BookmarkStore(
            project_name="proj",
            groups=[
                make_group([make_bookmark("a"), make_bookmark("b")]),
                make_group([make_bookmark("c")], id="g2"),
            ],
        )
        assert store.bookmark_count() == 3

    def test_from_dict_rejects_non_object(self):
        with pytest.raises(TypeError):
            BookmarkStore.from_dict([])

    def test_from_dict_rejects_non_list_groups(self):
        with pytest.raises(TypeError):
            BookmarkStore.from_dict({"groups": {}})


class TestMarkdown:
    def test_layout(self):
        parent = make_bookmark(
            "a",
            title="Entry",
            location="src/main.py:1-5",
            description="Starts here",
            category=BookmarkCategory.ENTRY_POINT,
            tags=["start", "cli"],
        )
        child = make_bookmark("b", 2, parent_id="a", title="Helper", description="Called by entry")
        store = BookmarkStore(
            project_name="proj",
            groups=[make_group([parent, child], name="Login flow", description="How login works", query="login?")],
        )

        markdown = store.to_markdown()

        assert markdown.startswith("# proj - AI Bookmarks\n")
        assert "## Login flow\n\nHow login works\n\n> Query: login?\n" in markdown
        assert "### 1. Entry\n\n**Location:** `src/main.py:1-5`\n" in markdown
        assert "**Category:** entry-point" in markdown
        assert "**Tags:** start, cli" in markdown
        assert "### 2. Helper" in markdown
        assert "**Parent:** Entry" in markdown
        assert markdown.index("### 1. Entry") < markdown.index("### 2. Helper")

    def test_empty_store(self):
        assert create_default_store("proj").to_markdown() == "# proj - AI Bookmarks\n"
