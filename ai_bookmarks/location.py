"""Location strings: parsing, formatting, path normalisation and line drift.

A location is ``<path>:<line>`` or ``<path>:<start>-<end>``. The path may
itself contain colons (Windows drive letters), so the line spec always starts
after the last colon.
"""

import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import NamedTuple

from .exceptions import MalformedLocationError

__all__ = [
    "LineEdit",
    "ParsedLocation",
    "parse_location",
    "format_location",
    "normalize_path",
    "paths_match",
    "adjust_line_numbers",
]

LINE_SPEC_PATTERN = re.compile(r"^(\d+)(?:-(\d+))?$")


@dataclass(frozen=True)
class ParsedLocation:
    """A decoded location.

    ``is_range`` only affects rendering; single-line locations still carry
    ``end_line == start_line``.
    """

    file_path: str
    start_line: int
    end_line: int
    is_range: bool = False


class LineEdit(NamedTuple):
    """A single-point edit: ``line_delta`` lines added (or removed) at ``start_line`` (1-indexed)."""

    start_line: int
    line_delta: int


def parse_location(location: str) -> ParsedLocation:
    """Parse a location string.

    Inverted ranges (``a.py:20-10``) are returned as-is; callers decide how to
    treat them.

    Raises:
        MalformedLocationError: If there is no colon, the path is empty, or the
            line spec is not one or two integers.
    """
    if not isinstance(location, str):
        raise MalformedLocationError(f"Location must be a string: {location!r}")

    colon = location.rfind(":")
    if colon == -1:
        raise MalformedLocationError(f"Location has no line number: {location!r}")

    file_path = location[:colon]
    if not file_path:
        raise MalformedLocationError(f"Location has no file path: {location!r}")

    match = LINE_SPEC_PATTERN.match(location[colon + 1 :].strip())
    if match is None:
        raise MalformedLocationError(f"Invalid line spec in location: {location!r}")

    start_line = int(match.group(1))
    if match.group(2) is None:
        return ParsedLocation(file_path, start_line, start_line, is_range=False)
    return ParsedLocation(file_path, start_line, int(match.group(2)), is_range=True)


def format_location(parsed: ParsedLocation) -> str:
    """Render a ParsedLocation back to its string form."""
    if parsed.is_range or parsed.start_line != parsed.end_line:
        return f"{parsed.file_path}:{parsed.start_line}-{parsed.end_line}"
    return f"{parsed.file_path}:{parsed.start_line}"


def normalize_path(path: str, workspace_root: str | Path) -> str:
    """Normalise a path (or a full location string) for storage and comparison.

    Separators become ``/``, trailing separators and a leading ``./`` are
    dropped, and anything under ``workspace_root`` is made relative to it.
    Absolute paths outside the workspace are kept.
    """
    normalized = path.replace("\\", "/")
    root = str(workspace_root).replace("\\", "/").rstrip("/")

    if root and (normalized == root or normalized.startswith(root + "/")):
        normalized = normalized[len(root) :].lstrip("/")

    while normalized.startswith("./"):
        normalized = normalized[2:]

    if len(normalized) > 1:
        normalized = normalized.rstrip("/")

    return normalized


def paths_match(stored_path: str, query_path: str) -> bool:
    """Loose path comparison: either path contains the other."""
    return query_path in stored_path or stored_path in query_path


def adjust_line_numbers(
    parsed: ParsedLocation, edit_start_line: int, line_delta: int
) -> ParsedLocation:
    """Shift a location after ``line_delta`` lines were added at ``edit_start_line``.

    - range entirely before the edit: unchanged
    - range starting at or after the edit: both bounds move
    - edit strictly inside the range: only the end moves

    Lines never drop below 1 and the end never drops below the start.
    """
    if line_delta == 0 or parsed.end_line < edit_start_line:
        return parsed

    if parsed.start_line >= edit_start_line:
        start_line = parsed.start_line + line_delta
        end_line = parsed.end_line + line_delta
    else:
        start_line = parsed.start_line
        end_line = parsed.end_line + line_delta

    start_line = max(1, start_line)
    # Deletions that swallow the end of a range collapse it onto its start
    # instead of inverting it.
    end_line = max(start_line, end_line)
    return replace(parsed, start_line=start_line, end_line=end_line)
