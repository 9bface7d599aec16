"""
git helpers and the commit rendezvous.

Everything here talks to git through :func:`gitabra.core.system.system_async`
so the host loop is never blocked by a git invocation.
"""
from __future__ import annotations

from .operations import (
    git_dot_git_dir,
    git_has_staged_changes,
    git_root_dir,
    git_root_dir_j,
)
from .commit import (
    CommitRendezvous,
    CommitSession,
    CommitState,
    make_editor_script,
)

__all__ = [
    "git_dot_git_dir",
    "git_has_staged_changes",
    "git_root_dir",
    "git_root_dir_j",
    "CommitRendezvous",
    "CommitSession",
    "CommitState",
    "make_editor_script",
]
