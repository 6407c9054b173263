"""
Tool handlers: validate arguments, call the store, return tagged results.

Every tool returns ``{"success": true, "data": ...}`` or
``{"success": false, "error": "..."}``; nothing is raised to the protocol
layer.
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import ValidationError

from ..drift import read_file_content
from ..exceptions import InvalidHierarchyError, MalformedLocationError, WorkspaceNotFoundError
from ..models import Bookmark, BookmarkGroup
from ..store import UNSET, BookmarkStoreManager
from ..workspace import WorkspaceManager
from .schema import (
    AddBookmarkArgs,
    BatchAddBookmarksArgs,
    BookmarkFields,
    BookmarkIdArgs,
    ClearAllBookmarksArgs,
    CreateGroupArgs,
    GetBookmarkTreeArgs,
    GroupIdArgs,
    ListBookmarksArgs,
    ListGroupsArgs,
    TOOLS_BY_NAME,
    ToolArgs,
    UpdateBookmarkArgs,
    UpdateGroupArgs,
    format_validation_error,
)

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    success: bool
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any) -> "ToolResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, data: Any = None) -> "ToolResult":
        return cls(success=False, error=error, data=data)

    def to_dict(self) -> dict:
        result: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            result["data"] = self.data
        if self.error is not None:
            result["error"] = self.error
        return result


def bookmark_to_dict(
    bookmark: Bookmark,
    group: Optional[BookmarkGroup] = None,
    include_snapshot: bool = False,
) -> dict:
    result = {
        "id": bookmark.id,
        "order": bookmark.order,
        "location": bookmark.location,
        "title": bookmark.title,
        "description": bookmark.description,
        "category": bookmark.category.value if bookmark.category else None,
        "tags": bookmark.tags,
        "parentId": bookmark.parent_id,
    }
    if include_snapshot:
        result["codeSnapshot"] = bookmark.code_snapshot
    if group is not None:
        result["groupId"] = group.id
        result["groupName"] = group.name
    return result


def group_summary(group: BookmarkGroup) -> dict:
    return {
        "id": group.id,
        "name": group.name,
        "description": group.description,
        "query": group.query,
        "createdAt": group.created_at,
        "updatedAt": group.updated_at,
        "createdBy": group.created_by,
        "bookmarkCount": len(group.bookmarks),
    }


class BookmarkToolHandlers:
    """Executes bookmark tools against the stores of a ``WorkspaceManager``."""

    def __init__(self, workspaces: WorkspaceManager):
        self.workspaces = workspaces

    async def call_tool(self, name: str, arguments: Optional[dict] = None) -> ToolResult:
        """Run a tool by name with raw JSON arguments."""
        definition = TOOLS_BY_NAME.get(name)
        if definition is None:
            return ToolResult.fail(f"Unknown tool: {name}")

        try:
            args = definition.args_model.model_validate(arguments or {})
        except ValidationError as e:
            return ToolResult.fail(format_validation_error(e))

        try:
            store = self.workspaces.get_store(args.project_root)
        except WorkspaceNotFoundError as e:
            return ToolResult.fail(str(e))

        handler = getattr(self, name)
        try:
            result = handler(store, args)
            if inspect.isawaitable(result):
                result = await result
            return result
        except (InvalidHierarchyError, MalformedLocationError) as e:
            return ToolResult.fail(str(e))
        except Exception as e:
            logger.exception("Tool %s failed", name)
            return ToolResult.fail(f"Failed to {name.replace('_', ' ')}: {e}")

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def create_group(self, store: BookmarkStoreManager, args: CreateGroupArgs) -> ToolResult:
        group_id = store.create_group(args.name, args.description, args.query, args.created_by)
        return ToolResult.ok(
            {"groupId": group_id, "message": f'Successfully created group "{args.name}"'}
        )

    def list_groups(self, store: BookmarkStoreManager, args: ListGroupsArgs) -> ToolResult:
        groups = store.list_groups(args.created_by)
        return ToolResult.ok(
            {"groups": [group_summary(g) for g in groups], "total": len(groups)}
        )

    def get_group(self, store: BookmarkStoreManager, args: GroupIdArgs) -> ToolResult:
        group = store.get_group(args.group_id)
        if group is None:
            return ToolResult.fail(f'Group with id "{args.group_id}" not found')

        data = group_summary(group)
        del data["bookmarkCount"]
        data["bookmarks"] = [bookmark_to_dict(b) for b in group.bookmarks]
        return ToolResult.ok({"group": data})

    def update_group(self, store: BookmarkStoreManager, args: UpdateGroupArgs) -> ToolResult:
        if not store.update_group(args.group_id, name=args.name, description=args.description):
            return ToolResult.fail(f'Group with id "{args.group_id}" not found')
        return ToolResult.ok({"message": f'Successfully updated group "{args.group_id}"'})

    def remove_group(self, store: BookmarkStoreManager, args: GroupIdArgs) -> ToolResult:
        group = store.get_group(args.group_id)
        if group is None:
            return ToolResult.fail(f'Group with id "{args.group_id}" not found')

        bookmark_count = len(group.bookmarks)
        if not store.remove_group(args.group_id):
            return ToolResult.fail(f'Failed to remove group "{args.group_id}"')
        return ToolResult.ok(
            {
                "message": f'Successfully removed group "{group.name}" with {bookmark_count} bookmark(s)',
                "bookmarksRemoved": bookmark_count,
            }
        )

    # ------------------------------------------------------------------
    # Bookmarks
    # ------------------------------------------------------------------

    def add_bookmark(self, store: BookmarkStoreManager, args: AddBookmarkArgs) -> ToolResult:
        bookmark_id = store.add_bookmark(
            args.group_id,
            args.location,
            args.title,
            args.description,
            order=args.order,
            category=args.category,
            tags=args.tags,
            code_snapshot=args.code_snapshot,
            parent_id=args.parent_id,
        )
        if bookmark_id is None:
            if store.get_group(args.group_id) is None:
                return ToolResult.fail(f'Group with id "{args.group_id}" not found')
            return ToolResult.fail(
                f'Parent bookmark with id "{args.parent_id}" not found in group "{args.group_id}"'
            )
        return ToolResult.ok(
            {"bookmarkId": bookmark_id, "message": f'Successfully added bookmark "{args.title}" to group'}
        )

    def list_bookmarks(self, store: BookmarkStoreManager, args: ListBookmarksArgs) -> ToolResult:
        matches = store.list_bookmarks(
            group_id=args.group_id,
            parent_id=args.parent_id,
            include_descendants=args.include_descendants,
            file_path=args.file_path,
            category=args.category,
            tags=args.tags,
        )
        return ToolResult.ok(
            {
                "bookmarks": [bookmark_to_dict(m.bookmark, m.group) for m in matches],
                "total": len(matches),
            }
        )

    def get_bookmark(self, store: BookmarkStoreManager, args: BookmarkIdArgs) -> ToolResult:
        match = store.get_bookmark(args.bookmark_id)
        if match is None:
            return ToolResult.fail(f'Bookmark with id "{args.bookmark_id}" not found')
        return ToolResult.ok(
            {
                "bookmark": bookmark_to_dict(match.bookmark, include_snapshot=True),
                "group": {"id": match.group.id, "name": match.group.name},
            }
        )

    def update_bookmark(self, store: BookmarkStoreManager, args: UpdateBookmarkArgs) -> ToolResult:
        found = store.update_bookmark(
            args.bookmark_id,
            location=args.location,
            title=args.title,
            description=args.description,
            order=args.order,
            category=args.category,
            tags=args.tags,
            parent_id=args.parent_id if args.reparent else UNSET,
        )
        if not found:
            return ToolResult.fail(f'Bookmark with id "{args.bookmark_id}" not found')
        return ToolResult.ok({"message": f'Successfully updated bookmark "{args.bookmark_id}"'})

    def remove_bookmark(self, store: BookmarkStoreManager, args: BookmarkIdArgs) -> ToolResult:
        match = store.get_bookmark(args.bookmark_id)
        if match is None:
            return ToolResult.fail(f'Bookmark with id "{args.bookmark_id}" not found')

        removed = 1 + len(match.group.descendants_of(args.bookmark_id))
        store.remove_bookmark(args.bookmark_id)
        return ToolResult.ok(
            {
                "message": f'Successfully removed bookmark "{args.bookmark_id}"',
                "bookmarksRemoved": removed,
            }
        )

    def get_bookmark_tree(self, store: BookmarkStoreManager, args: GetBookmarkTreeArgs) -> ToolResult:
        tree = store.get_bookmark_tree(args.bookmark_id, args.max_depth)
        if tree is None:
            return ToolResult.fail(f'Bookmark with id "{args.bookmark_id}" not found')
        return ToolResult.ok({"tree": tree.to_dict()})

    def batch_add_bookmarks(
        self, store: BookmarkStoreManager, args: BatchAddBookmarksArgs
    ) -> ToolResult:
        group = store.get_group(args.group_id)
        if group is None:
            return ToolResult.fail(f'Group with id "{args.group_id}" not found')

        items = []
        errors = {}
        for index, raw in enumerate(args.bookmarks):
            if not isinstance(raw, dict):
                errors[index] = "Bookmark must be an object"
                items.append({})
                continue
            try:
                item = BookmarkFields.model_validate(raw)
            except ValidationError as e:
                errors[index] = format_validation_error(e)
                items.append({})
                continue
            items.append(item.model_dump())

        batch = store.batch_add_bookmarks(args.group_id, items, parent_id=args.parent_id)
        if batch is None:
            return ToolResult.fail(
                f'Parent bookmark with id "{args.parent_id}" not found in group "{args.group_id}"'
            )

        results = []
        for item_result in batch.results:
            if item_result.index in errors:
                results.append({"index": item_result.index, "error": errors[item_result.index]})
            else:
                results.append(item_result.to_dict())

        data = {
            "message": f'Added {batch.success_count}/{batch.total} bookmarks to group "{group.name}"',
            "successCount": batch.success_count,
            "total": batch.total,
            "results": results,
        }
        if not batch.success:
            return ToolResult.fail("No bookmarks were added", data=data)
        return ToolResult.ok(data)

    def clear_all_bookmarks(
        self, store: BookmarkStoreManager, args: ClearAllBookmarksArgs
    ) -> ToolResult:
        if args.confirm is not True:
            return ToolResult.fail(
                "This operation will remove ALL bookmarks and groups. Set confirm=true to proceed."
            )

        cleared = store.clear_all()
        return ToolResult.ok(
            {
                "message": "Successfully cleared all bookmarks",
                "groupsRemoved": cleared.groups_removed,
                "bookmarksRemoved": cleared.bookmarks_removed,
            }
        )

    def export_markdown(self, store: BookmarkStoreManager, args: ToolArgs) -> ToolResult:
        return ToolResult.ok({"markdown": store.export_to_markdown()})

    async def check_bookmark_validity(
        self, store: BookmarkStoreManager, args: BookmarkIdArgs
    ) -> ToolResult:
        result = await store.check_bookmark_validity(args.bookmark_id, read_file_content)
        if result is None:
            return ToolResult.fail(f'Bookmark with id "{args.bookmark_id}" not found')
        return ToolResult.ok(result.to_dict())
