"""Thin git helpers built on system_async."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from gitabra.core.config import TimeoutsConfig
from gitabra.core.exceptions import GitCommandError, GitTimeoutError
from gitabra.core.job import wait
from gitabra.core.system import AsyncCallResult, system_async
from gitabra.core.utils.text import remove_trailing_newlines, str_is_really_empty

logger = logging.getLogger(__name__)

STAGED_DIFF_ARGV = ["git", "diff", "--cached", "--exit-code"]
ROOT_DIR_ARGV = ["git", "rev-parse", "--show-toplevel"]


def _timeouts(cwd: Optional[Path]) -> TimeoutsConfig:
    return TimeoutsConfig(repo_root=Path(cwd) if cwd else None)


def git_root_dir_j(cwd: Optional[Path] = None) -> AsyncCallResult:
    """Start ``git rev-parse --show-toplevel`` without waiting for it."""
    return system_async(ROOT_DIR_ARGV, split_lines=True, cwd=cwd)


def git_root_dir(cwd: Optional[Path] = None, timeout_ms: Optional[int] = None) -> Optional[Path]:
    """Return the work tree root containing ``cwd``, or None outside a repository."""
    timeouts = _timeouts(cwd)
    if timeout_ms is None:
        timeout_ms = timeouts.root_dir_ms
    j = git_root_dir_j(cwd)
    if not wait(j, timeout_ms, interval_ms=timeouts.wait_poll_interval_ms):
        logger.warning("git rev-parse did not finish within %sms", timeout_ms)
        return None
    if j.exit_code != 0 or not j.output or str_is_really_empty(j.output[0]):
        return None
    return Path(j.output[0])


def git_dot_git_dir(cwd: Optional[Path] = None) -> Optional[Path]:
    root = git_root_dir(cwd)
    return root / ".git" if root is not None else None


def git_has_staged_changes(cwd: Optional[Path] = None, timeout_ms: Optional[int] = None) -> bool:
    """Whether the index differs from HEAD.

    Raises:
        GitTimeoutError: git did not finish within ``timeout_ms``.
        GitCommandError: git failed (exit code other than 0 or 1).
    """
    timeouts = _timeouts(cwd)
    if timeout_ms is None:
        timeout_ms = timeouts.staged_check_ms
    j = system_async(STAGED_DIFF_ARGV, split_lines=True, cwd=cwd)
    if not wait(j, timeout_ms, interval_ms=timeouts.wait_poll_interval_ms):
        j.cancel()
        raise GitTimeoutError(
            f"git diff --cached did not finish within {timeout_ms}ms",
            argv=STAGED_DIFF_ARGV,
        )
    # --exit-code: 0 means no differences, 1 means differences.
    if j.exit_code == 0:
        return False
    if j.exit_code == 1:
        return True
    raise GitCommandError(
        "Could not inspect staged changes",
        argv=STAGED_DIFF_ARGV,
        exit_code=j.exit_code,
        stderr=remove_trailing_newlines("\n".join(j.err_output)),
    )


__all__ = [
    "git_root_dir_j",
    "git_root_dir",
    "git_dot_git_dir",
    "git_has_staged_changes",
]
