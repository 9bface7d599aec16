"""Hold `git commit` open while its message is edited in a buffer.

`git commit` is started with an editor launcher script as ``GIT_EDITOR``.
The script prints the path of the message file it was handed and then
sleeps until a sentinel file (``<temp_path>.exit``) exists, which keeps git
waiting for "its editor". Meanwhile the message file is opened in an editor
buffer. Writing, leaving or wiping that buffer touches the sentinel; the
script exits, git reads the message and finishes.

States: ``IDLE -> AWAITING_EDITMSG_PATH -> EDITING -> RELEASING -> IDLE``.
A :class:`CommitRendezvous` holds at most one :class:`CommitSession`.
"""
from __future__ import annotations

import asyncio
import logging
import shlex
import shutil
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional

import psutil

from gitabra.core.config import CommitConfig, TimeoutsConfig
from gitabra.core.editor import Buffer, BufferEvent, EditorHost
from gitabra.core.exceptions import CommitEditmsgTimeoutError, CommitInProgressError
from gitabra.core.git.operations import git_has_staged_changes
from gitabra.core.job import wait, wait_for
from gitabra.core.system import AsyncCallResult, system_async
from gitabra.core.utils.templating import SafeDict
from gitabra.core.utils.text import remove_trailing_newlines, str_is_really_empty

logger = logging.getLogger(__name__)

RELEASE_EVENTS = (BufferEvent.WRITE_POST, BufferEvent.WIN_LEAVE, BufferEvent.WIPEOUT)

# `git commit` runs this through `sh -c '<script> "$@"' <script> <msgfile>`,
# so $1 is expanded by the outer shell before the inner one starts.
_EDITOR_SCRIPT = (
    'sh -c "\n'
    'echo \\"$1\\"\n'
    "while [ ! -f {sentinel} ];\n"
    "    do sleep {poll_seconds}\n"
    "done\n"
    'exit 0"'
)


class CommitState(str, Enum):
    IDLE = "idle"
    AWAITING_EDITMSG_PATH = "awaiting_editmsg_path"
    EDITING = "editing"
    RELEASING = "releasing"


def sentinel_path(temp_path: Path | str) -> Path:
    return Path(f"{temp_path}.exit")


def make_editor_script(temp_path: Path | str, poll_seconds: float = 0.1) -> str:
    """Build the editor launcher for ``temp_path``.

    The script echoes the message file path, polls for ``<temp_path>.exit``
    every ``poll_seconds`` and then exits 0.
    """
    return _EDITOR_SCRIPT.format_map(
        SafeDict(
            sentinel=shlex.quote(str(sentinel_path(temp_path))),
            poll_seconds=f"{poll_seconds:g}",
        )
    )


@dataclass
class CommitSession:
    """One in-flight `git commit` and the buffer editing its message."""

    temp_path: Path
    job: AsyncCallResult
    amend: bool = False
    editmsg_path: Optional[Path] = None
    buffer: Optional[Buffer] = None

    @property
    def sentinel(self) -> Path:
        return sentinel_path(self.temp_path)


def _session_is_live(session: CommitSession) -> bool:
    if session.job.done:
        return False
    pid = session.job.pid
    if pid is None:
        return True
    try:
        proc = psutil.Process(pid)
        return proc.is_running() and proc.status() != psutil.STATUS_ZOMBIE
    except psutil.Error:
        return False


class CommitRendezvous:
    """Coordinates `git commit` processes with an editor host, one at a time."""

    def __init__(
        self,
        editor: EditorHost,
        *,
        repo_root: Optional[Path] = None,
        editmsg_timeout_ms: Optional[int] = None,
        release_timeout_ms: Optional[int] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self.editor = editor
        self.repo_root = Path(repo_root) if repo_root else None
        self.config = CommitConfig(repo_root=self.repo_root)
        self.editmsg_timeout_ms = (
            editmsg_timeout_ms if editmsg_timeout_ms is not None else self.config.editmsg_timeout_ms
        )
        self.release_timeout_ms = (
            release_timeout_ms if release_timeout_ms is not None else self.config.release_timeout_ms
        )
        self.poll_interval_ms = TimeoutsConfig(repo_root=self.repo_root).wait_poll_interval_ms
        self.loop = loop
        self.session: Optional[CommitSession] = None
        self.state = CommitState.IDLE

    @property
    def active(self) -> bool:
        return self.session is not None

    # --- Public API -----------------------------------------------------
    def start(self, amend: bool = False) -> Optional[CommitSession]:
        """Start `git commit` and open its message file in the editor.

        Returns the new session, or None when there is nothing to commit.

        Raises:
            CommitInProgressError: another commit message is still being edited.
            CommitEditmsgTimeoutError: git never reported the message file path.
        """
        self._admit()

        if not amend and not git_has_staged_changes(self.repo_root):
            self.editor.notify("No staged changes to commit")
            return None

        temp_path = Path(tempfile.mkdtemp(prefix="gitabra-commit-")) / "commit"
        argv = self._commit_argv(amend)
        j = system_async(
            argv,
            split_lines=True,
            env=self._commit_env(temp_path),
            cwd=self.repo_root,
            loop=self.loop,
        )
        session = CommitSession(temp_path=temp_path, job=j, amend=amend)
        self.session = session
        self.state = CommitState.AWAITING_EDITMSG_PATH

        # The launcher echoes the message file path as its first line.
        wait_for(
            j,
            self.editmsg_timeout_ms,
            lambda: bool(j.output) or j.done,
            interval_ms=self.poll_interval_ms,
        )
        if not j.output or str_is_really_empty(j.output[0]):
            stderr = remove_trailing_newlines("\n".join(j.err_output))
            self._abandon(session)
            raise CommitEditmsgTimeoutError(
                "Expected to receive the EDITMSG file path, but timed out",
                context={
                    "argv": argv,
                    "timeout_ms": self.editmsg_timeout_ms,
                    "exit_code": j.exit_code,
                    "stderr": stderr,
                },
            )

        try:
            editmsg_path = self._resolve_editmsg(j.output[0])
            session.editmsg_path = editmsg_path
            session.buffer = self._open_buffer(session, editmsg_path)
        except Exception:
            self._abandon(session)
            raise

        self.state = CommitState.EDITING
        logger.info("Editing %s (git pid %s)", session.editmsg_path, j.pid)
        return session

    def finish(self, session: Optional[CommitSession] = None, reason: str = "") -> bool:
        """Release the pending `git commit`.

        Safe to call repeatedly: only the first call for a live session acts,
        later ones (or ones for another session) return False.
        """
        current = self.session
        if current is None or (session is not None and session is not current):
            return False

        self.session = None
        self.state = CommitState.RELEASING
        logger.debug("Releasing git commit (%s)", reason or "finish")
        try:
            done = self._release(current)
            j = current.job
            if done and len(j.output) > 1:
                logger.info("%s", " ".join(j.output[1:]))
            if j.err_output:
                self.editor.notify(remove_trailing_newlines("\n".join(j.err_output)))
        finally:
            self.state = CommitState.IDLE
        return True

    def abort(self) -> bool:
        """Abandon the pending commit, if any."""
        current = self.session
        if current is None:
            return False
        self._abandon(current)
        return True

    # --- Helpers --------------------------------------------------------
    def _commit_argv(self, amend: bool) -> List[str]:
        argv = ["git", "commit"]
        if amend:
            argv.append("--amend")
        return argv

    def _commit_env(self, temp_path: Path) -> dict[str, str]:
        return {
            # Give `git commit` a shell command to run as its editor; it
            # returns once the sentinel exists.
            self.config.editor_variable: make_editor_script(
                temp_path, self.config.sentinel_poll_seconds
            ),
            # Help git locate the user's .gitconfig
            self.config.home_variable: str(Path.home()),
        }

    def _resolve_editmsg(self, line: str) -> Path:
        path = Path(remove_trailing_newlines(line))
        if not path.is_absolute():
            path = (self.repo_root or Path.cwd()) / path
        return path

    def _open_buffer(self, session: CommitSession, editmsg_path: Path) -> Buffer:
        buffer = self.editor.edit(editmsg_path)
        # Make sure this buffer goes away once it is hidden
        self.editor.set_option(buffer, "bufhidden", "wipe")
        self.editor.set_option(buffer, "swapfile", False)
        self.editor.clear_hooks(buffer)
        for event in RELEASE_EVENTS:
            self.editor.on(
                buffer,
                event,
                lambda _buf, ev, s=session: self.finish(s, ev.value),
            )
        return buffer

    def _admit(self) -> None:
        current = self.session
        if current is None:
            return
        if _session_is_live(current):
            raise CommitInProgressError(
                "A commit message is already being edited",
                context={
                    "editmsg_path": str(current.editmsg_path) if current.editmsg_path else None,
                    "pid": current.job.pid,
                },
            )
        logger.warning("Discarding stale commit session (pid %s)", current.job.pid)
        self._abandon(current)

    def _release(self, session: CommitSession) -> bool:
        """Touch the sentinel and wait for git; True when it finished."""
        if session.sentinel.parent.is_dir():
            session.sentinel.touch()
        done = wait(session.job, self.release_timeout_ms, interval_ms=self.poll_interval_ms)
        if done:
            self._cleanup(session)
        else:
            logger.warning(
                "git commit still running %sms after release (pid %s)",
                self.release_timeout_ms,
                session.job.pid,
            )
        return done

    def _abandon(self, session: CommitSession) -> None:
        if self.session is session:
            self.session = None
        self.state = CommitState.RELEASING
        try:
            if not self._release(session):
                session.job.cancel()
        finally:
            self.state = CommitState.IDLE

    def _cleanup(self, session: CommitSession) -> None:
        # Only once git is gone: the launcher must still be able to see the sentinel.
        shutil.rmtree(session.temp_path.parent, ignore_errors=True)


__all__ = [
    "CommitRendezvous",
    "CommitSession",
    "CommitState",
    "RELEASE_EVENTS",
    "make_editor_script",
    "sentinel_path",
]
