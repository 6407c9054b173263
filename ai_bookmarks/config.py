"""Configuration for the bookmark server and CLI.

Settings come from explicit arguments first, then the environment:

- ``WORKSPACE_ROOT``: default workspace (falls back to the current directory)
- ``AI_BOOKMARKS_STORE_DIR``: store directory inside the workspace
- ``AI_BOOKMARKS_STORE_FILE``: store file name
- ``AI_BOOKMARKS_WATCH_INTERVAL``: seconds between store file polls
- ``AI_BOOKMARKS_LOG_LEVEL``: logging level name

Values may reference other variables with ``${VAR}`` or ``${VAR:-default}``.
"""

import os
import re
from dataclasses import dataclass
from typing import Optional

from .storage import DEFAULT_STORE_DIR, DEFAULT_STORE_FILE_NAME

__all__ = [
    "BookmarksConfig",
    "load_config",
    "expand_env_vars",
]

# Pattern to match ${VAR} or ${VAR:-default} syntax
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")

DEFAULT_WATCH_INTERVAL = 1.0
DEFAULT_LOG_LEVEL = "WARNING"


def expand_env_vars(value: str) -> str:
    """Expand ``${VAR}`` and ``${VAR:-default}`` references in a string."""

    def replacer(match: re.Match) -> str:
        var_name = match.group(1)
        default = match.group(2)
        env_value = os.environ.get(var_name)
        if env_value is not None:
            return env_value
        return default if default is not None else ""

    return ENV_VAR_PATTERN.sub(replacer, value)


def _env(name: str) -> Optional[str]:
    value = os.environ.get(name)
    if value is None:
        return None
    value = expand_env_vars(value).strip()
    return value or None


@dataclass
class BookmarksConfig:
    """Resolved settings for one process."""

    workspace_root: str
    store_dir: str = DEFAULT_STORE_DIR
    store_file_name: str = DEFAULT_STORE_FILE_NAME
    watch_interval: float = DEFAULT_WATCH_INTERVAL
    log_level: str = DEFAULT_LOG_LEVEL


def load_config(
    workspace_root: Optional[str] = None,
    log_level: Optional[str] = None,
) -> BookmarksConfig:
    """Build the configuration from arguments and environment variables.

    Raises:
        ValueError: If ``AI_BOOKMARKS_WATCH_INTERVAL`` is not a positive number.
    """
    root = workspace_root or _env("WORKSPACE_ROOT") or os.getcwd()

    watch_interval = DEFAULT_WATCH_INTERVAL
    raw_interval = _env("AI_BOOKMARKS_WATCH_INTERVAL")
    if raw_interval is not None:
        watch_interval = float(raw_interval)
        if watch_interval <= 0:
            raise ValueError(
                f"AI_BOOKMARKS_WATCH_INTERVAL must be positive, got {raw_interval}"
            )

    return BookmarksConfig(
        workspace_root=os.path.abspath(os.path.expanduser(root)),
        store_dir=_env("AI_BOOKMARKS_STORE_DIR") or DEFAULT_STORE_DIR,
        store_file_name=_env("AI_BOOKMARKS_STORE_FILE") or DEFAULT_STORE_FILE_NAME,
        watch_interval=watch_interval,
        log_level=(log_level or _env("AI_BOOKMARKS_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
    )
