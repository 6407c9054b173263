"""Bookmark data model.

The dict forms produced by ``to_dict`` are written verbatim to the store
file, so their camelCase keys are part of the on-disk format.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

STORE_VERSION = 1

CREATED_BY_VALUES = ("ai", "user")


class BookmarkCategory(str, Enum):
    """What kind of code a bookmark points at."""

    ENTRY_POINT = "entry-point"
    CORE_LOGIC = "core-logic"
    TODO = "todo"
    BUG = "bug"
    OPTIMIZATION = "optimization"
    EXPLANATION = "explanation"
    WARNING = "warning"
    REFERENCE = "reference"

    @classmethod
    def values(cls) -> list[str]:
        return [c.value for c in cls]


def now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


@dataclass
class Bookmark:
    """A titled pointer to a file location."""

    id: str
    order: int
    location: str
    title: str
    description: str
    category: Optional[BookmarkCategory] = None
    tags: Optional[list[str]] = None
    code_snapshot: Optional[str] = None
    parent_id: Optional[str] = None

    def to_dict(self) -> dict:
        result = {
            "id": self.id,
            "order": self.order,
            "location": self.location,
            "title": self.title,
            "description": self.description,
        }
        if self.category is not None:
            result["category"] = self.category.value
        if self.tags is not None:
            result["tags"] = list(self.tags)
        if self.code_snapshot is not None:
            result["codeSnapshot"] = self.code_snapshot
        if self.parent_id is not None:
            result["parentId"] = self.parent_id
        return result

    @classmethod
    def from_dict(cls, data: dict) -> "Bookmark":
        category = data.get("category")
        tags = data.get("tags")
        if tags is not None and not isinstance(tags, list):
            raise TypeError(f"tags must be a list, got {type(tags).__name__}")

        return cls(
            id=data["id"],
            order=int(data.get("order", 1)),
            location=data["location"],
            title=data.get("title", ""),
            description=data.get("description", ""),
            category=BookmarkCategory(category) if category else None,
            tags=tags,
            code_snapshot=data.get("codeSnapshot"),
            parent_id=data.get("parentId"),
        )


@dataclass
class BookmarkGroup:
    """A named, ordered collection of bookmarks (all hierarchy levels)."""

    id: str
    name: str
    created_at: str
    updated_at: str
    created_by: str = "ai"
    description: Optional[str] = None
    query: Optional[str] = None
    bookmarks: list[Bookmark] = field(default_factory=list)

    def touch(self) -> None:
        self.updated_at = now_iso()

    def sort_bookmarks(self) -> None:
        """Stable sort of the whole collection by ``order``, ignoring nesting."""
        self.bookmarks.sort(key=lambda b: b.order)

    def find_bookmark(self, bookmark_id: str) -> Optional[Bookmark]:
        for bookmark in self.bookmarks:
            if bookmark.id == bookmark_id:
                return bookmark
        return None

    def children_of(self, parent_id: Optional[str]) -> list[Bookmark]:
        """Direct children of ``parent_id`` (top level when None), in order."""
        return [b for b in self.bookmarks if b.parent_id == parent_id]

    def descendants_of(self, bookmark_id: str) -> list[Bookmark]:
        """All transitive children of a bookmark, pre-order.

        Tolerates cycles in hand-edited store files by visiting each id once.
        """
        result = []
        seen = {bookmark_id}

        def walk(parent_id: str) -> None:
            for child in self.children_of(parent_id):
                if child.id in seen:
                    continue
                seen.add(child.id)
                result.append(child)
                walk(child.id)

        walk(bookmark_id)
        return result

    def to_dict(self) -> dict:
        result = {
            "id": self.id,
            "name": self.name,
        }
        if self.description is not None:
            result["description"] = self.description
        if self.query is not None:
            result["query"] = self.query
        result.update(
            {
                "createdAt": self.created_at,
                "updatedAt": self.updated_at,
                "createdBy": self.created_by,
                "bookmarks": [b.to_dict() for b in self.bookmarks],
            }
        )
        return result

    @classmethod
    def from_dict(cls, data: dict) -> "BookmarkGroup":
        created_at = data.get("createdAt") or now_iso()
        created_by = data.get("createdBy", "ai")
        if created_by not in CREATED_BY_VALUES:
            raise ValueError(f"Invalid createdBy value: {created_by!r}")

        return cls(
            id=data["id"],
            name=data["name"],
            created_at=created_at,
            updated_at=data.get("updatedAt") or created_at,
            created_by=created_by,
            description=data.get("description"),
            query=data.get("query"),
            bookmarks=[Bookmark.from_dict(b) for b in data.get("bookmarks", [])],
        )


@dataclass
class BookmarkStore:
    """Everything persisted for one workspace."""

    project_name: str
    version: int = STORE_VERSION
    groups: list[BookmarkGroup] = field(default_factory=list)

    def bookmark_count(self) -> int:
        return sum(len(g.bookmarks) for g in self.groups)

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "projectName": self.project_name,
            "groups": [g.to_dict() for g in self.groups],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BookmarkStore":
        if not isinstance(data, dict):
            raise TypeError("Store document must be a JSON object")
        groups = data.get("groups", [])
        if not isinstance(groups, list):
            raise TypeError("groups must be a list")

        return cls(
            project_name=data.get("projectName", ""),
            version=int(data.get("version", STORE_VERSION)),
            groups=[BookmarkGroup.from_dict(g) for g in groups],
        )

    def to_markdown(self) -> str:
        """Render every group and bookmark, in group then order sequence."""
        lines = [f"# {self.project_name} - AI Bookmarks", ""]

        for group in self.groups:
            lines.append(f"## {group.name}")
            if group.description:
                lines.append("")
                lines.append(group.description)
            if group.query:
                lines.append("")
                lines.append(f"> Query: {group.query}")
            lines.append("")

            titles = {b.id: b.title for b in group.bookmarks}
            for bookmark in group.bookmarks:
                lines.append(f"### {bookmark.order}. {bookmark.title}")
                lines.append("")
                lines.append(f"**Location:** `{bookmark.location}`")
                if bookmark.parent_id and bookmark.parent_id in titles:
                    lines.append(f"**Parent:** {titles[bookmark.parent_id]}")
                if bookmark.category:
                    lines.append(f"**Category:** {bookmark.category.value}")
                if bookmark.tags:
                    lines.append(f"**Tags:** {', '.join(bookmark.tags)}")
                lines.append("")
                lines.append(bookmark.description)
                lines.append("")

        return "\n".join(lines)


def create_default_store(project_name: str) -> BookmarkStore:
    """An empty store for a workspace that has no store file yet."""
    return BookmarkStore(project_name=project_name, version=STORE_VERSION, groups=[])
