"""
Tool argument models for the bookmark tools.

Tool arguments arrive as flat camelCase JSON objects. Each tool has a
pydantic model that checks required fields, enum values and the destructive
confirmation flag before anything reaches the store; the JSON schemas
advertised to clients are generated from the same models.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationError, model_validator

CategoryName = Literal[
    "entry-point",
    "core-logic",
    "todo",
    "bug",
    "optimization",
    "explanation",
    "warning",
    "reference",
]

CreatedBy = Literal["ai", "user"]

LOCATION_HELP = 'Location in format "path/to/file:line" or "path/to/file:start-end" for ranges'


# =============================================================================
# Base
# =============================================================================


class ToolArgs(BaseModel):
    """Fields shared by every tool."""

    model_config = ConfigDict(populate_by_name=True)

    project_root: Optional[str] = Field(
        None,
        alias="projectRoot",
        description="Workspace root to operate on (defaults to the server workspace)",
    )


# =============================================================================
# Groups
# =============================================================================


class CreateGroupArgs(ToolArgs):
    name: str = Field(..., min_length=1, description='Group name, e.g. "Crash game core flow"')
    description: Optional[str] = Field(None, description="Group description")
    query: Optional[str] = Field(
        None, description="The user query that triggered this group creation"
    )
    created_by: CreatedBy = Field("ai", alias="createdBy", description="Creator type")


class ListGroupsArgs(ToolArgs):
    created_by: Optional[CreatedBy] = Field(
        None, alias="createdBy", description="Filter by creator type"
    )


class GroupIdArgs(ToolArgs):
    group_id: str = Field(..., alias="groupId", min_length=1, description="The group ID")


class UpdateGroupArgs(GroupIdArgs):
    name: Optional[str] = Field(None, min_length=1, description="New group name")
    description: Optional[str] = Field(None, description="New group description")

    @model_validator(mode="after")
    def _require_update(self) -> "UpdateGroupArgs":
        if self.name is None and self.description is None:
            raise ValueError("At least one of name or description must be provided")
        return self


# =============================================================================
# Bookmarks
# =============================================================================


class BookmarkFields(BaseModel):
    """Fields describing a new bookmark (also one item of a batch)."""

    model_config = ConfigDict(populate_by_name=True)

    location: str = Field(..., min_length=1, description=LOCATION_HELP)
    title: str = Field(..., min_length=1, description="Short title for the bookmark")
    description: str = Field(
        ..., min_length=1, description="Detailed description explaining the code at this location"
    )
    order: Optional[int] = Field(
        None, ge=1, description="Order among siblings (appends to the end if omitted)"
    )
    category: Optional[CategoryName] = Field(None, description="Bookmark category")
    tags: Optional[List[str]] = Field(None, description="Tags for filtering")
    code_snapshot: Optional[str] = Field(
        None, alias="codeSnapshot", description="Code at the location, used for drift detection"
    )


class AddBookmarkArgs(ToolArgs, BookmarkFields):
    group_id: str = Field(..., alias="groupId", min_length=1, description="The group to add to")
    parent_id: Optional[str] = Field(
        None, alias="parentId", description="Parent bookmark in the same group (top level if omitted)"
    )


class BookmarkIdArgs(ToolArgs):
    bookmark_id: str = Field(..., alias="bookmarkId", min_length=1, description="The bookmark ID")


class ListBookmarksArgs(ToolArgs):
    group_id: Optional[str] = Field(None, alias="groupId", description="Filter by group ID")
    parent_id: Optional[str] = Field(
        None, alias="parentId", description="Only children of this bookmark"
    )
    include_descendants: bool = Field(
        False,
        alias="includeDescendants",
        description="With parentId, return all descendants instead of direct children",
    )
    file_path: Optional[str] = Field(
        None, alias="filePath", description="Filter by file path (partial match)"
    )
    category: Optional[CategoryName] = Field(None, description="Filter by category")
    tags: Optional[List[str]] = Field(None, description="Filter by tags (any match)")


UPDATE_FIELDS = ("location", "title", "description", "order", "category", "tags", "parent_id")


class UpdateBookmarkArgs(BookmarkIdArgs):
    location: Optional[str] = Field(None, min_length=1, description="New location")
    title: Optional[str] = Field(None, min_length=1, description="New title")
    description: Optional[str] = Field(None, description="New description")
    order: Optional[int] = Field(None, ge=1, description="New order among siblings")
    category: Optional[CategoryName] = Field(None, description="New category")
    tags: Optional[List[str]] = Field(None, description="New tags (replaces existing)")
    parent_id: Optional[str] = Field(
        None,
        alias="parentId",
        description="New parent bookmark in the same group; null moves it to the top level",
    )

    @model_validator(mode="after")
    def _require_update(self) -> "UpdateBookmarkArgs":
        if not any(name in self.model_fields_set for name in UPDATE_FIELDS):
            raise ValueError("At least one update field must be provided")
        return self

    @property
    def reparent(self) -> bool:
        """True when parentId was given, including an explicit null."""
        return "parent_id" in self.model_fields_set


class GetBookmarkTreeArgs(BookmarkIdArgs):
    max_depth: Optional[int] = Field(
        None, alias="maxDepth", ge=0, description="Levels of children to include (unbounded if omitted)"
    )


class BatchAddBookmarksArgs(GroupIdArgs):
    parent_id: Optional[str] = Field(
        None, alias="parentId", description="Parent bookmark for every item (top level if omitted)"
    )
    # Items are validated one by one so a bad item does not fail the batch.
    bookmarks: List[Any] = Field(
        ...,
        min_length=1,
        description="Array of bookmarks to add",
        json_schema_extra={"items": BookmarkFields.model_json_schema(by_alias=True)},
    )


class ClearAllBookmarksArgs(ToolArgs):
    confirm: StrictBool = Field(
        ...,
        description="Must be set to true to confirm the operation. This prevents accidental data loss.",
    )


# =============================================================================
# Tool catalogue
# =============================================================================


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    args_model: Type[ToolArgs]

    def input_schema(self) -> dict:
        return self.args_model.model_json_schema(by_alias=True)


TOOL_DEFINITIONS: List[ToolDefinition] = [
    ToolDefinition(
        "create_group",
        "Create a new bookmark group. Groups are used to organize bookmarks by topic or query.",
        CreateGroupArgs,
    ),
    ToolDefinition(
        "add_bookmark",
        "Add a bookmark to a group. Bookmarks mark important code locations with explanations. "
        "Use parentId to nest it under another bookmark of the same group.",
        AddBookmarkArgs,
    ),
    ToolDefinition("list_groups", "List all bookmark groups with their metadata.", ListGroupsArgs),
    ToolDefinition(
        "list_bookmarks",
        "List bookmarks with optional filters. All filters combine with AND; tags match if any tag matches.",
        ListBookmarksArgs,
    ),
    ToolDefinition("update_group", "Update a bookmark group's name or description.", UpdateGroupArgs),
    ToolDefinition(
        "update_bookmark",
        "Update a bookmark's properties. Set parentId to move it within the hierarchy.",
        UpdateBookmarkArgs,
    ),
    ToolDefinition(
        "remove_bookmark",
        "Remove a bookmark by its ID, together with all of its child bookmarks.",
        BookmarkIdArgs,
    ),
    ToolDefinition("remove_group", "Remove a bookmark group and all its bookmarks.", GroupIdArgs),
    ToolDefinition("get_group", "Get a single bookmark group with all its bookmarks.", GroupIdArgs),
    ToolDefinition("get_bookmark", "Get a single bookmark by its ID with its group info.", BookmarkIdArgs),
    ToolDefinition(
        "get_bookmark_tree",
        "Get a bookmark with its nested children, optionally limited to maxDepth levels.",
        GetBookmarkTreeArgs,
    ),
    ToolDefinition(
        "batch_add_bookmarks",
        "Add multiple bookmarks to a group in a single operation. More efficient than adding one by one.",
        BatchAddBookmarksArgs,
    ),
    ToolDefinition(
        "clear_all_bookmarks",
        "Clear all bookmarks and groups. This is a destructive operation that requires explicit confirmation.",
        ClearAllBookmarksArgs,
    ),
    ToolDefinition("export_markdown", "Export all bookmarks as a markdown document.", ToolArgs),
    ToolDefinition(
        "check_bookmark_validity",
        "Check whether the code at a bookmark still matches its stored snapshot.",
        BookmarkIdArgs,
    ),
]

TOOLS_BY_NAME: Dict[str, ToolDefinition] = {t.name: t for t in TOOL_DEFINITIONS}


def format_validation_error(error: ValidationError) -> str:
    """Compact, single-line description of a pydantic validation error."""
    messages = []
    for detail in error.errors():
        message = detail["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, ") :]
        location = ".".join(str(part) for part in detail["loc"])
        messages.append(f"{location}: {message}" if location else message)
    return "; ".join(messages)
