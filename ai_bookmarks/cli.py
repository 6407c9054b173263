"""Command line interface for AI bookmarks.

Runs the MCP tool server and lets a person browse, add to and prune the same
store the agent writes to. Groups created here are marked as created by the
user.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Annotated, Literal, Optional

import cyclopts
from dotenv import load_dotenv
from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table
from rich.tree import Tree

from ai_bookmarks.config import load_config
from ai_bookmarks.drift import read_file_content
from ai_bookmarks.exceptions import MalformedLocationError, WorkspaceNotFoundError
from ai_bookmarks.location import parse_location
from ai_bookmarks.models import Bookmark, BookmarkCategory, BookmarkGroup
from ai_bookmarks.similarity import ValidityStatus
from ai_bookmarks.store import BookmarkStoreManager
from ai_bookmarks.workspace import WorkspaceManager

app = cyclopts.App(name="ai-bookmarks", help="Organised code bookmarks for AI agents")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

WorkspaceOption = Annotated[
    Optional[str],
    cyclopts.Parameter(help="Workspace root (default: $WORKSPACE_ROOT or current directory)"),
]

STATUS_STYLES = {
    ValidityStatus.VALID: "green",
    ValidityStatus.VALID_WITH_CAVEAT: "yellow",
    ValidityStatus.INVALID: "red",
}


def _get_console() -> Console:
    """Get a Rich console for output."""
    return Console()


def _setup_logging(level: str) -> None:
    # Logs go to stderr; stdout carries the MCP protocol when serving.
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )


def _open_store(workspace: Optional[str], console: Console) -> BookmarkStoreManager:
    config = load_config(workspace)
    _setup_logging(config.log_level)
    try:
        return WorkspaceManager.from_config(config).get_store()
    except WorkspaceNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


def _bookmark_label(bookmark: Bookmark) -> str:
    label = f"[bold]{bookmark.order}. {bookmark.title}[/bold] [cyan]{bookmark.location}[/cyan]"
    if bookmark.category:
        label += f" [magenta]({bookmark.category.value})[/magenta]"
    if bookmark.tags:
        label += f" [dim]#{' #'.join(bookmark.tags)}[/dim]"
    return label


def _add_children(node: Tree, group: BookmarkGroup, parent_id: Optional[str], seen: set) -> None:
    for bookmark in group.children_of(parent_id):
        if bookmark.id in seen:
            continue
        seen.add(bookmark.id)
        child = node.add(_bookmark_label(bookmark))
        _add_children(child, group, bookmark.id, seen)


@app.command
def serve(
    *,
    workspace: WorkspaceOption = None,
    verbose: Annotated[bool, cyclopts.Parameter(help="Enable debug logging")] = False,
):
    """Run the MCP tool server over stdio.

    Example:
        ai-bookmarks serve --workspace ~/src/my-project
    """
    from ai_bookmarks.mcp.server import run_server

    config = load_config(workspace, log_level="DEBUG" if verbose else None)
    _setup_logging(config.log_level)
    asyncio.run(run_server(config))


@app.command
def groups(
    *,
    workspace: WorkspaceOption = None,
    created_by: Annotated[
        Optional[Literal["ai", "user"]], cyclopts.Parameter(help="Only groups created by ai or user")
    ] = None,
):
    """List bookmark groups."""
    console = _get_console()
    store = _open_store(workspace, console)

    table = Table(title=f"{store.project_name} - bookmark groups")
    table.add_column("Name", style="bold")
    table.add_column("ID", style="dim")
    table.add_column("Created by")
    table.add_column("Bookmarks", justify="right")
    table.add_column("Updated")

    for group in store.list_groups(created_by):
        table.add_row(
            group.name,
            group.id,
            group.created_by,
            str(len(group.bookmarks)),
            group.updated_at,
        )

    console.print(table)


@app.command
def show(
    *,
    workspace: WorkspaceOption = None,
    group_id: Annotated[Optional[str], cyclopts.Parameter(help="Only show this group")] = None,
):
    """Show bookmarks as a tree, grouped and nested by parent."""
    console = _get_console()
    store = _open_store(workspace, console)

    root = Tree(f"[bold]{store.project_name}[/bold]")
    for group in store.list_groups():
        if group_id and group.id != group_id:
            continue
        branch = root.add(f"[bold blue]{group.name}[/bold blue] [dim]{group.id}[/dim]")
        _add_children(branch, group, None, set())

    console.print(root)


@app.command(name="list")
def list_bookmarks(
    *,
    workspace: WorkspaceOption = None,
    group_id: Annotated[Optional[str], cyclopts.Parameter(help="Filter by group ID")] = None,
    file: Annotated[Optional[str], cyclopts.Parameter(help="Filter by file path (partial match)")] = None,
    category: Annotated[Optional[BookmarkCategory], cyclopts.Parameter(help="Filter by category")] = None,
    tag: Annotated[Optional[list[str]], cyclopts.Parameter(help="Filter by tag (any match)")] = None,
):
    """List bookmarks matching filters."""
    console = _get_console()
    store = _open_store(workspace, console)

    matches = store.list_bookmarks(
        group_id=group_id,
        file_path=file,
        category=category.value if category else None,
        tags=tag,
    )

    table = Table(title=f"{len(matches)} bookmark(s)")
    table.add_column("Group", style="blue")
    table.add_column("#", justify="right")
    table.add_column("Title", style="bold")
    table.add_column("Location", style="cyan")
    table.add_column("Category", style="magenta")
    table.add_column("ID", style="dim")

    for match in matches:
        bookmark = match.bookmark
        table.add_row(
            match.group.name,
            str(bookmark.order),
            bookmark.title,
            bookmark.location,
            bookmark.category.value if bookmark.category else "",
            bookmark.id,
        )

    console.print(table)


@app.command(name="create-group")
def create_group(
    name: Annotated[str, cyclopts.Parameter(help="Group name")],
    *,
    workspace: WorkspaceOption = None,
    description: Annotated[Optional[str], cyclopts.Parameter(help="Group description")] = None,
):
    """Create a bookmark group of your own."""
    console = _get_console()
    store = _open_store(workspace, console)
    group_id = store.create_group(name, description, created_by="user")
    console.print(f'[green]✓ Group "{name}" created[/green]')
    console.print(f"[dim]{group_id}[/dim]")


@app.command
def add(
    location: Annotated[str, cyclopts.Parameter(help='Location, e.g. "src/app.py:10" or "src/app.py:10-20"')],
    title: Annotated[str, cyclopts.Parameter(help="Bookmark title")],
    description: Annotated[str, cyclopts.Parameter(help="What the code does")],
    *,
    workspace: WorkspaceOption = None,
    group_id: Annotated[Optional[str], cyclopts.Parameter(help="Existing group to add to")] = None,
    new_group: Annotated[
        Optional[str], cyclopts.Parameter(help="Create a group with this name and add to it")
    ] = None,
    category: Annotated[Optional[BookmarkCategory], cyclopts.Parameter(help="Bookmark category")] = None,
    tag: Annotated[Optional[list[str]], cyclopts.Parameter(help="Tag (repeatable)")] = None,
    parent_id: Annotated[Optional[str], cyclopts.Parameter(help="Parent bookmark in the same group")] = None,
):
    """Add a bookmark by hand.

    Example:
        ai-bookmarks add src/app.py:10-20 "Startup" "Wires the services" --new-group "Boot"
    """
    console = _get_console()
    if (group_id is None) == (new_group is None):
        console.print("[red]Error: pass exactly one of --group-id or --new-group[/red]")
        sys.exit(1)

    store = _open_store(workspace, console)
    try:
        parse_location(store.normalize_path(location))
    except MalformedLocationError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if new_group is not None:
        group_id = store.create_group(new_group, created_by="user")

    bookmark_id = store.add_bookmark(
        group_id,
        location,
        title,
        description,
        category=category.value if category else None,
        tags=tag,
        parent_id=parent_id,
    )

    if bookmark_id is None:
        if store.get_group(group_id) is None:
            console.print(f"[red]Group not found: {group_id}[/red]")
        else:
            console.print(f"[red]Parent bookmark not found in group: {parent_id}[/red]")
        sys.exit(1)

    console.print(f'[green]✓ Bookmark "{title}" added[/green]')
    console.print(f"[dim]{bookmark_id}[/dim]")


@app.command
def remove(
    bookmark_id: Annotated[str, cyclopts.Parameter(help="Bookmark to remove")],
    *,
    workspace: WorkspaceOption = None,
    force: Annotated[bool, cyclopts.Parameter(name=["--force", "-f"], help="Skip confirmation")] = False,
):
    """Remove a bookmark and all of its child bookmarks."""
    console = _get_console()
    store = _open_store(workspace, console)

    match = store.get_bookmark(bookmark_id)
    if match is None:
        console.print(f"[red]Bookmark not found: {bookmark_id}[/red]")
        sys.exit(1)

    children = len(match.group.descendants_of(bookmark_id))
    if not force:
        prompt = f'Delete bookmark [cyan]"{match.bookmark.title}"[/cyan]'
        if children:
            prompt += f" and its {children} child bookmark(s)"
        if not Confirm.ask(prompt + "?", default=False):
            console.print("[yellow]Cancelled[/yellow]")
            return

    store.remove_bookmark(bookmark_id)
    console.print(f'[green]✓ Bookmark "{match.bookmark.title}" deleted[/green]')


@app.command(name="remove-group")
def remove_group(
    group_id: Annotated[str, cyclopts.Parameter(help="Group to remove")],
    *,
    workspace: WorkspaceOption = None,
    force: Annotated[bool, cyclopts.Parameter(name=["--force", "-f"], help="Skip confirmation")] = False,
):
    """Remove a group and all of its bookmarks."""
    console = _get_console()
    store = _open_store(workspace, console)

    group = store.get_group(group_id)
    if group is None:
        console.print(f"[red]Group not found: {group_id}[/red]")
        sys.exit(1)

    if not force:
        prompt = f'Delete group [cyan]"{group.name}"[/cyan] and all {len(group.bookmarks)} bookmark(s)?'
        if not Confirm.ask(prompt, default=False):
            console.print("[yellow]Cancelled[/yellow]")
            return

    store.remove_group(group_id)
    console.print(f'[green]✓ Group "{group.name}" deleted[/green]')


@app.command
def export(
    *,
    workspace: WorkspaceOption = None,
    output: Annotated[Optional[Path], cyclopts.Parameter(help="Write to this file instead of stdout")] = None,
):
    """Export all bookmarks as markdown."""
    console = _get_console()
    store = _open_store(workspace, console)
    markdown = store.export_to_markdown()

    if output is None:
        print(markdown)
        return

    output.write_text(markdown, encoding="utf-8")
    console.print(f"[green]✓ Exported {store.data.bookmark_count()} bookmark(s) to {output}[/green]")


@app.command
def check(*, workspace: WorkspaceOption = None):
    """Check every bookmark's code snapshot against the current files."""
    console = _get_console()
    store = _open_store(workspace, console)
    results = asyncio.run(store.check_all_bookmarks(read_file_content))

    table = Table(title="Bookmark validity")
    table.add_column("Group", style="blue")
    table.add_column("Title", style="bold")
    table.add_column("Location", style="cyan")
    table.add_column("Status")
    table.add_column("Reason", style="dim")

    invalid = 0
    for match, result in results:
        if not result.valid:
            invalid += 1
        style = STATUS_STYLES[result.status]
        table.add_row(
            match.group.name,
            match.bookmark.title,
            match.bookmark.location,
            f"[{style}]{result.status.value}[/{style}]",
            result.reason or "",
        )

    console.print(table)
    if invalid:
        console.print(f"[red]{invalid} bookmark(s) no longer match their code[/red]")
        sys.exit(1)


@app.command
def clear(
    *,
    workspace: WorkspaceOption = None,
    confirm: Annotated[bool, cyclopts.Parameter(help="Required: confirm removing everything")] = False,
):
    """Remove ALL groups and bookmarks from the workspace store."""
    console = _get_console()
    if not confirm:
        console.print(
            "[red]This will remove ALL bookmarks and groups. Pass --confirm to proceed.[/red]"
        )
        sys.exit(1)

    store = _open_store(workspace, console)
    cleared = store.clear_all()
    console.print(
        f"[green]✓ Removed {cleared.groups_removed} group(s) and "
        f"{cleared.bookmarks_removed} bookmark(s)[/green]"
    )


def main():
    load_dotenv()
    app()
