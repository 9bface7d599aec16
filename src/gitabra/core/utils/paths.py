"""Project and user directory resolution.

Project root: the nearest ancestor holding a ``.git`` entry (directory or
worktree file), falling back to the starting directory. Config directories:
``<project>/.gitabra`` and ``$GITABRA_HOME`` (default ``~/.gitabra``).
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

PROJECT_CONFIG_DIRNAME = ".gitabra"
USER_HOME_ENV = "GITABRA_HOME"
DEFAULT_USER_CONFIG_DIR = "~/.gitabra"


def resolve_project_root(start: Optional[Path] = None) -> Path:
    current = Path(start or Path.cwd()).expanduser().resolve()
    for candidate in (current, *current.parents):
        if (candidate / ".git").exists():
            return candidate
    return current


def get_project_config_dir(repo_root: Path) -> Path:
    return Path(repo_root) / PROJECT_CONFIG_DIRNAME


def get_user_config_dir() -> Path:
    """Return the user config directory.

    Relative ``$GITABRA_HOME`` values are resolved against the home
    directory, not the current working directory.
    """
    raw = os.environ.get(USER_HOME_ENV) or DEFAULT_USER_CONFIG_DIR
    p = Path(raw).expanduser()
    if not p.is_absolute():
        p = Path.home() / p
    return p.resolve()


__all__ = [
    "PROJECT_CONFIG_DIRNAME",
    "USER_HOME_ENV",
    "resolve_project_root",
    "get_project_config_dir",
    "get_user_config_dir",
]
