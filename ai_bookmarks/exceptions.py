"""
Exceptions for the bookmark store.
"""


class BookmarkError(Exception):
    """Base exception for bookmark operations."""


class MalformedLocationError(BookmarkError, ValueError):
    """Raised when a location string does not match `path:line` or `path:start-end`."""


class InvalidHierarchyError(BookmarkError):
    """Raised when a parent assignment would break the bookmark hierarchy."""


class BookmarkStorageError(BookmarkError):
    """Raised when reading or writing the store file fails."""


class WorkspaceNotFoundError(BookmarkError):
    """Raised when a workspace directory does not exist."""
