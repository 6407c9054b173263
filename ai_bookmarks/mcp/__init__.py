"""Tool-call surface for the bookmark store (MCP)."""

from .handlers import BookmarkToolHandlers, ToolResult
from .schema import TOOL_DEFINITIONS, ToolDefinition

__all__ = [
    "BookmarkToolHandlers",
    "ToolResult",
    "TOOL_DEFINITIONS",
    "ToolDefinition",
]
