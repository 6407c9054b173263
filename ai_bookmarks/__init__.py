"""
AI Bookmarks: persistent, grouped, hierarchical bookmarks for a source tree.

An agent (or a human) records named pointers to code locations with
explanations, organised into groups and optional parent/child trees. The
store keeps them in a JSON file inside the workspace and shifts their line
numbers as files are edited.
"""

from .exceptions import (
    BookmarkError,
    BookmarkStorageError,
    InvalidHierarchyError,
    MalformedLocationError,
    WorkspaceNotFoundError,
)
from .location import LineEdit, ParsedLocation, format_location, parse_location
from .models import Bookmark, BookmarkCategory, BookmarkGroup, BookmarkStore
from .store import UNSET, BookmarkMatch, BookmarkStoreManager
from .workspace import WorkspaceManager

__version__ = "0.1.0"

__all__ = [
    "Bookmark",
    "BookmarkCategory",
    "BookmarkError",
    "BookmarkGroup",
    "BookmarkMatch",
    "BookmarkStorageError",
    "BookmarkStore",
    "BookmarkStoreManager",
    "InvalidHierarchyError",
    "LineEdit",
    "MalformedLocationError",
    "ParsedLocation",
    "UNSET",
    "WorkspaceManager",
    "WorkspaceNotFoundError",
    "format_location",
    "parse_location",
]
