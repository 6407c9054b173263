"""MCP stdio server exposing the bookmark tools.

Built on the official MCP Python SDK's low-level ``Server``. Tool results are
returned as a single JSON text block containing the tagged result.
"""

import asyncio
import contextlib
import json
import logging
from typing import Any

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from ..config import BookmarksConfig
from ..watcher import watch_workspaces
from ..workspace import WorkspaceManager
from .handlers import BookmarkToolHandlers
from .schema import TOOL_DEFINITIONS

__all__ = ["SERVER_NAME", "create_server", "run_server"]

logger = logging.getLogger(__name__)

SERVER_NAME = "ai-bookmarks"


def create_server(handlers: BookmarkToolHandlers) -> Server:
    """Build an MCP server whose tools dispatch to ``handlers``."""
    server = Server(SERVER_NAME)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [
            types.Tool(
                name=definition.name,
                description=definition.description,
                inputSchema=definition.input_schema(),
            )
            for definition in TOOL_DEFINITIONS
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any] | None) -> list[types.TextContent]:
        result = await handlers.call_tool(name, arguments)
        return [
            types.TextContent(
                type="text", text=json.dumps(result.to_dict(), indent=2, ensure_ascii=False)
            )
        ]

    return server


async def run_server(config: BookmarksConfig) -> None:
    """Serve over stdio until the client disconnects."""
    workspaces = WorkspaceManager.from_config(config)
    # Fails fast when the default workspace does not exist.
    workspaces.get_store()

    server = create_server(BookmarkToolHandlers(workspaces))
    watcher = asyncio.create_task(watch_workspaces(workspaces, config.watch_interval))
    logger.info("Serving bookmarks for %s", workspaces.default_workspace)

    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        watcher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watcher
        workspaces.dispose()
