"""Bookmark store engine.

``BookmarkStoreManager`` owns the in-memory store for one workspace. Every
mutating call updates memory, writes the store file and then notifies
subscribers exactly once before returning. Lookups that miss return ``None``
or ``False``; hierarchy violations and malformed locations raise.
"""

import logging
import os
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable, Mapping, NamedTuple, Optional

from .exceptions import BookmarkStorageError, InvalidHierarchyError, MalformedLocationError
from .location import (
    LineEdit,
    adjust_line_numbers,
    format_location,
    normalize_path,
    parse_location,
    paths_match,
)
from .models import (
    Bookmark,
    BookmarkCategory,
    BookmarkGroup,
    BookmarkStore,
    create_default_store,
    now_iso,
)
from .similarity import ValidityResult, evaluate_snapshot
from .storage import StoreFile
from .watcher import StoreFileEvent, StoreFileWatcher

logger = logging.getLogger(__name__)

ChangeListener = Callable[[], None]
ContentFetcher = Callable[[str], Awaitable[Optional[str]]]


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


# Distinguishes "parent_id not given" from "parent_id=None" (move to top level).
UNSET: Any = _Unset()


class BookmarkMatch(NamedTuple):
    """A bookmark together with the group that owns it."""

    bookmark: Bookmark
    group: BookmarkGroup


class ClearResult(NamedTuple):
    groups_removed: int
    bookmarks_removed: int


@dataclass
class BookmarkTreeNode:
    """A bookmark and its nested children, as returned by ``get_bookmark_tree``."""

    bookmark: Bookmark
    depth: int
    children: list["BookmarkTreeNode"] = field(default_factory=list)

    def to_dict(self) -> dict:
        result = self.bookmark.to_dict()
        result["depth"] = self.depth
        result["children"] = [c.to_dict() for c in self.children]
        return result


@dataclass
class BatchItemResult:
    index: int
    bookmark_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        if self.error is not None:
            return {"index": self.index, "error": self.error}
        return {"index": self.index, "bookmarkId": self.bookmark_id}


@dataclass
class BatchAddResult:
    """Per-item outcome of ``batch_add_bookmarks``."""

    results: list[BatchItemResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def success_count(self) -> int:
        return len([r for r in self.results if r.error is None])

    @property
    def success(self) -> bool:
        return self.success_count > 0


class BookmarkStoreManager:
    """Manages the bookmarks of one workspace and their persistence."""

    def __init__(self, workspace_root: str | Path, store_file: Optional[StoreFile] = None):
        """Load the store for a workspace.

        Args:
            workspace_root: Workspace directory; stored locations are relative to it
            store_file: Persistence adapter (defaults to ``.vscode/ai-bookmarks.json``)
        """
        self._workspace_root = os.path.abspath(str(workspace_root))
        self.store_file = store_file or StoreFile(self._workspace_root)
        self._listeners: list[ChangeListener] = []
        self._store = self.store_file.load()
        self._watcher = StoreFileWatcher(self.store_file)

    @property
    def workspace_root(self) -> str:
        return self._workspace_root

    @property
    def store_path(self) -> Path:
        return self.store_file.path

    @property
    def project_name(self) -> str:
        return self._store.project_name

    @property
    def data(self) -> BookmarkStore:
        """The live store object. Treat as read-only."""
        return self._store

    # ------------------------------------------------------------------
    # Change notification and persistence
    # ------------------------------------------------------------------

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a no-argument callback fired after every change.

        Returns:
            A function that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Bookmark change listener failed")

    def _save(self) -> bool:
        try:
            self.store_file.save(self._store)
        except BookmarkStorageError as e:
            # In-memory state stays authoritative until the next successful save.
            logger.error("Failed to save bookmark store: %s", e)
            return False
        self._watcher.mark_synced()
        return True

    def _commit(self) -> None:
        self._save()
        self._notify()

    def reload(self) -> None:
        """Replace the in-memory store with what is on disk."""
        self._store = self.store_file.load()
        self._watcher.mark_synced()
        logger.debug("Reloaded bookmark store from %s", self.store_path)
        self._notify()

    def reset(self) -> None:
        """Fall back to an empty store (the store file was deleted externally)."""
        self._store = create_default_store(self.store_file.default_project_name)
        self._watcher.mark_synced()
        self._notify()

    def poll_store_file(self) -> Optional[StoreFileEvent]:
        """Check the store file for external changes and react to them."""
        event = self._watcher.poll()
        if event == StoreFileEvent.DELETED:
            logger.info("Bookmark store %s was deleted", self.store_path)
            self.reset()
        elif event is not None:
            logger.info("Bookmark store %s %s externally", self.store_path, event.value)
            self.reload()
        return event

    def dispose(self) -> None:
        self._listeners.clear()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def normalize_path(self, path: str) -> str:
        return normalize_path(path, self._workspace_root)

    def resolve_path(self, file_path: str) -> str:
        """Absolute path for a stored (usually workspace-relative) file path."""
        if os.path.isabs(file_path):
            return file_path
        return os.path.join(self._workspace_root, file_path)

    def _normalize_location(self, location: str) -> str:
        normalized = self.normalize_path(location)
        parse_location(normalized)
        return normalized

    def _new_bookmark(
        self,
        group: BookmarkGroup,
        location: str,
        title: str,
        description: str,
        order: Optional[int] = None,
        category: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        code_snapshot: Optional[str] = None,
        parent_id: Optional[str] = None,
    ) -> Optional[Bookmark]:
        if parent_id is not None and group.find_bookmark(parent_id) is None:
            return None

        normalized = self._normalize_location(location)

        if order is None:
            siblings = group.children_of(parent_id)
            order = max(b.order for b in siblings) + 1 if siblings else 1

        return Bookmark(
            id=str(uuid.uuid4()),
            order=order,
            location=normalized,
            title=title,
            description=description,
            category=BookmarkCategory(category) if category is not None else None,
            tags=list(tags) if tags is not None else None,
            code_snapshot=code_snapshot,
            parent_id=parent_id,
        )

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def create_group(
        self,
        name: str,
        description: Optional[str] = None,
        query: Optional[str] = None,
        created_by: str = "ai",
    ) -> str:
        """Create a group and return its id."""
        now = now_iso()
        group = BookmarkGroup(
            id=str(uuid.uuid4()),
            name=name,
            created_at=now,
            updated_at=now,
            created_by=created_by,
            description=description,
            query=query,
        )
        self._store.groups.append(group)
        self._commit()
        return group.id

    def get_group(self, group_id: str) -> Optional[BookmarkGroup]:
        for group in self._store.groups:
            if group.id == group_id:
                return group
        return None

    def list_groups(self, created_by: Optional[str] = None) -> list[BookmarkGroup]:
        if created_by:
            return [g for g in self._store.groups if g.created_by == created_by]
        return list(self._store.groups)

    def update_group(
        self,
        group_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> bool:
        """Partially update a group. Returns False when it does not exist."""
        group = self.get_group(group_id)
        if group is None:
            return False

        if name is not None:
            group.name = name
        if description is not None:
            group.description = description
        group.touch()

        self._commit()
        return True

    def remove_group(self, group_id: str) -> bool:
        """Remove a group together with all of its bookmarks."""
        group = self.get_group(group_id)
        if group is None:
            return False

        self._store.groups.remove(group)
        self._commit()
        return True

    # ------------------------------------------------------------------
    # Bookmarks
    # ------------------------------------------------------------------

    def add_bookmark(
        self,
        group_id: str,
        location: str,
        title: str,
        description: str,
        order: Optional[int] = None,
        category: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        code_snapshot: Optional[str] = None,
        parent_id: Optional[str] = None,
    ) -> Optional[str]:
        """Add a bookmark to a group.

        Without ``order`` the bookmark goes after its last sibling (same
        ``parent_id``).

        Returns:
            The new bookmark id, or None if the group, or the parent within
            that group, does not exist.

        Raises:
            MalformedLocationError: If ``location`` cannot be parsed
        """
        group = self.get_group(group_id)
        if group is None:
            return None

        bookmark = self._new_bookmark(
            group,
            location,
            title,
            description,
            order=order,
            category=category,
            tags=tags,
            code_snapshot=code_snapshot,
            parent_id=parent_id,
        )
        if bookmark is None:
            return None

        group.bookmarks.append(bookmark)
        group.sort_bookmarks()
        group.touch()

        self._commit()
        return bookmark.id

    def get_bookmark(self, bookmark_id: str) -> Optional[BookmarkMatch]:
        for group in self._store.groups:
            bookmark = group.find_bookmark(bookmark_id)
            if bookmark is not None:
                return BookmarkMatch(bookmark, group)
        return None

    def list_bookmarks(
        self,
        group_id: Optional[str] = None,
        parent_id: Optional[str] = None,
        include_descendants: bool = False,
        file_path: Optional[str] = None,
        category: Optional[str] = None,
        tags: Optional[list[str]] = None,
    ) -> list[BookmarkMatch]:
        """Flat, filtered list of bookmarks with their groups.

        All given filters must match. ``parent_id`` restricts to direct
        children, or to every descendant (pre-order) with
        ``include_descendants``. ``file_path`` matches when either path
        contains the other; ``tags`` matches when any tag is present.
        """
        file_filter = self.normalize_path(file_path) if file_path else None
        category_filter = BookmarkCategory(category) if category else None

        results = []
        for group in self._store.groups:
            if group_id is not None and group.id != group_id:
                continue

            if parent_id is not None:
                if group.find_bookmark(parent_id) is None:
                    continue
                if include_descendants:
                    candidates = group.descendants_of(parent_id)
                else:
                    candidates = group.children_of(parent_id)
            else:
                candidates = group.bookmarks

            for bookmark in candidates:
                if file_filter is not None and not self._matches_file(bookmark, file_filter):
                    continue
                if category_filter is not None and bookmark.category != category_filter:
                    continue
                if tags:
                    if not bookmark.tags or not any(t in bookmark.tags for t in tags):
                        continue
                results.append(BookmarkMatch(bookmark, group))

        return results

    def _matches_file(self, bookmark: Bookmark, file_filter: str) -> bool:
        try:
            parsed = parse_location(bookmark.location)
        except MalformedLocationError:
            return False
        return paths_match(parsed.file_path, file_filter)

    def update_bookmark(
        self,
        bookmark_id: str,
        *,
        location: Optional[str] = None,
        title: Optional[str] = None,
        description: Optional[str] = None,
        order: Optional[int] = None,
        category: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        parent_id: Optional[str] = UNSET,
    ) -> bool:
        """Replace the given fields of a bookmark.

        Pass ``parent_id=None`` to move the bookmark to the top level.

        Returns:
            False if the bookmark does not exist.

        Raises:
            InvalidHierarchyError: If the new parent is missing from the
                bookmark's group, is the bookmark itself or one of its
                descendants. Nothing is changed in that case.
            MalformedLocationError: If ``location`` cannot be parsed
        """
        match = self.get_bookmark(bookmark_id)
        if match is None:
            return False
        bookmark, group = match

        # Validate everything before touching the bookmark.
        new_location = self._normalize_location(location) if location is not None else None
        new_category = BookmarkCategory(category) if category is not None else None
        reparent = parent_id is not UNSET
        if reparent:
            self._check_new_parent(group, bookmark, parent_id)

        if new_location is not None:
            bookmark.location = new_location
        if title is not None:
            bookmark.title = title
        if description is not None:
            bookmark.description = description
        if order is not None:
            bookmark.order = order
        if new_category is not None:
            bookmark.category = new_category
        if tags is not None:
            bookmark.tags = list(tags)
        if reparent:
            bookmark.parent_id = parent_id

        if order is not None or reparent:
            group.sort_bookmarks()
        group.touch()

        self._commit()
        return True

    def _check_new_parent(
        self, group: BookmarkGroup, bookmark: Bookmark, parent_id: Optional[str]
    ) -> None:
        if parent_id is None:
            return
        if parent_id == bookmark.id:
            raise InvalidHierarchyError(f"Bookmark {bookmark.id!r} cannot be its own parent")
        if group.find_bookmark(parent_id) is None:
            raise InvalidHierarchyError(
                f"Parent bookmark {parent_id!r} not found in group {group.name!r}"
            )
        if any(d.id == parent_id for d in group.descendants_of(bookmark.id)):
            raise InvalidHierarchyError(
                f"Bookmark {parent_id!r} is a descendant of {bookmark.id!r}; "
                "moving under it would create a cycle"
            )

    def remove_bookmark(self, bookmark_id: str) -> bool:
        """Remove a bookmark and all of its descendants."""
        match = self.get_bookmark(bookmark_id)
        if match is None:
            return False
        bookmark, group = match

        doomed = {bookmark.id} | {d.id for d in group.descendants_of(bookmark.id)}
        group.bookmarks = [b for b in group.bookmarks if b.id not in doomed]
        group.touch()

        self._commit()
        return True

    def get_bookmark_tree(
        self, bookmark_id: str, max_depth: Optional[int] = None
    ) -> Optional[BookmarkTreeNode]:
        """A bookmark with its children nested up to ``max_depth`` levels.

        Depth 0 is the bookmark itself; ``max_depth=None`` means unbounded.
        """
        match = self.get_bookmark(bookmark_id)
        if match is None:
            return None
        root, group = match
        seen = {root.id}

        def build(bookmark: Bookmark, depth: int) -> BookmarkTreeNode:
            node = BookmarkTreeNode(bookmark=bookmark, depth=depth)
            if max_depth is not None and depth >= max_depth:
                return node
            for child in group.children_of(bookmark.id):
                if child.id in seen:
                    continue
                seen.add(child.id)
                node.children.append(build(child, depth + 1))
            return node

        return build(root, 0)

    def batch_add_bookmarks(
        self,
        group_id: str,
        bookmarks: Iterable[Mapping[str, Any]],
        parent_id: Optional[str] = None,
    ) -> Optional[BatchAddResult]:
        """Add several bookmarks to one group, saving once.

        Each item is a mapping with the ``add_bookmark`` keyword names
        (``location``, ``title``, ``description`` required). A bad item is
        reported in its result and the rest of the batch still runs.

        Returns:
            None if the group (or ``parent_id`` within it) does not exist.
        """
        group = self.get_group(group_id)
        if group is None:
            return None
        if parent_id is not None and group.find_bookmark(parent_id) is None:
            return None

        batch = BatchAddResult()
        for index, item in enumerate(bookmarks):
            error = _batch_item_error(item)
            if error is not None:
                batch.results.append(BatchItemResult(index=index, error=error))
                continue

            try:
                bookmark = self._new_bookmark(
                    group,
                    item["location"],
                    item["title"],
                    item["description"],
                    order=item.get("order"),
                    category=item.get("category"),
                    tags=item.get("tags"),
                    code_snapshot=item.get("code_snapshot"),
                    parent_id=parent_id,
                )
            except ValueError as e:
                batch.results.append(BatchItemResult(index=index, error=str(e)))
                continue

            group.bookmarks.append(bookmark)
            group.sort_bookmarks()
            batch.results.append(BatchItemResult(index=index, bookmark_id=bookmark.id))

        if batch.success:
            group.touch()
            self._commit()
        return batch

    def clear_all(self) -> ClearResult:
        """Remove every group and bookmark."""
        result = ClearResult(
            groups_removed=len(self._store.groups),
            bookmarks_removed=self._store.bookmark_count(),
        )
        self._store.groups = []
        self._commit()
        return result

    def get_bookmarks_by_file(self, file_path: str) -> list[BookmarkMatch]:
        return self.list_bookmarks(file_path=file_path)

    def get_all_bookmarks(self) -> list[BookmarkMatch]:
        return self.list_bookmarks()

    def export_to_markdown(self) -> str:
        return self._store.to_markdown()

    # ------------------------------------------------------------------
    # Drift
    # ------------------------------------------------------------------

    def update_bookmark_snapshot(self, bookmark_id: str, code_snapshot: str) -> bool:
        """Replace the code snapshot used for drift detection."""
        match = self.get_bookmark(bookmark_id)
        if match is None:
            return False

        match.bookmark.code_snapshot = code_snapshot
        match.group.touch()

        self._commit()
        return True

    async def check_bookmark_validity(
        self, bookmark_id: str, content_fetcher: ContentFetcher
    ) -> Optional[ValidityResult]:
        """Compare a bookmark's snapshot with the current file content.

        Args:
            bookmark_id: Bookmark to check
            content_fetcher: Async callable returning a file's text for an
                absolute path, or None if it cannot be read

        Returns:
            The verdict, or None if the bookmark does not exist.
        """
        match = self.get_bookmark(bookmark_id)
        if match is None:
            return None
        bookmark = match.bookmark

        if not bookmark.code_snapshot:
            return evaluate_snapshot(None, "")

        try:
            parsed = parse_location(bookmark.location)
        except MalformedLocationError as e:
            return ValidityResult.invalid(str(e))

        try:
            content = await content_fetcher(self.resolve_path(parsed.file_path))
        except OSError as e:
            return ValidityResult.invalid(f"Error reading file: {e}")
        if not content:
            return ValidityResult.invalid("File not found")

        lines = content.split("\n")
        start_idx = parsed.start_line - 1
        end_idx = parsed.end_line
        if start_idx < 0 or end_idx > len(lines) or start_idx >= end_idx:
            return ValidityResult.invalid("Line range out of bounds")

        current = "\n".join(lines[start_idx:end_idx])
        return evaluate_snapshot(bookmark.code_snapshot, current)

    async def check_all_bookmarks(
        self, content_fetcher: ContentFetcher
    ) -> list[tuple[BookmarkMatch, ValidityResult]]:
        results = []
        for match in self.get_all_bookmarks():
            result = await self.check_bookmark_validity(match.bookmark.id, content_fetcher)
            if result is not None:
                results.append((match, result))
        return results

    def adjust_bookmarks_for_file_change(
        self, file_path: str, edit_start_line: int, line_delta: int
    ) -> int:
        """Shift bookmarks in ``file_path`` after a single-point edit."""
        return self.adjust_bookmarks_for_edits(
            file_path, [LineEdit(edit_start_line, line_delta)]
        )

    def adjust_bookmarks_for_edits(self, file_path: str, edits: Iterable[LineEdit]) -> int:
        """Apply a sequence of edits to every bookmark in ``file_path``.

        Edits are applied in the given order. The store is saved and
        subscribers notified once, and only if some bookmark moved.

        Returns:
            Number of bookmarks whose location changed.
        """
        edits = [e for e in edits if e.line_delta != 0]
        if not edits:
            return 0

        target = self.normalize_path(file_path)
        moved = 0

        for group in self._store.groups:
            group_changed = False
            for bookmark in group.bookmarks:
                try:
                    parsed = parse_location(bookmark.location)
                except MalformedLocationError:
                    logger.warning("Skipping bookmark with malformed location: %s", bookmark.location)
                    continue

                if parsed.file_path != target:
                    continue

                adjusted = parsed
                for edit in edits:
                    adjusted = adjust_line_numbers(adjusted, edit.start_line, edit.line_delta)

                if adjusted != parsed:
                    bookmark.location = format_location(adjusted)
                    group_changed = True
                    moved += 1

            if group_changed:
                group.touch()

        if moved:
            logger.debug("Adjusted %d bookmark(s) in %s", moved, target)
            self._commit()
        return moved


def _batch_item_error(item: Mapping[str, Any]) -> Optional[str]:
    for key in ("location", "title", "description"):
        value = item.get(key)
        if not value or not isinstance(value, str):
            return f"{key} is required"

    category = item.get("category")
    if category is not None and category not in BookmarkCategory.values():
        return f"Invalid category: {category}"
    return None
