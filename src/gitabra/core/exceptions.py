from __future__ import annotations

from typing import Any, Dict, Mapping


class GitabraError(Exception):
    """Base exception for gitabra."""

    context: Dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        if context is not None:
            # Store a shallow copy to avoid accidental mutation.
            self.context = dict(context)
        else:
            self.context = {}

    def to_json_error(self) -> Dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.__class__.__name__,
            "context": self.context,
        }


class JobStateError(GitabraError, RuntimeError):
    """Raised when a Job is asked to do something its lifecycle state forbids."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        GitabraError.__init__(self, message, context=context)
        RuntimeError.__init__(self, message)


class HostLoopBusyError(GitabraError, RuntimeError):
    """Raised when a blocking wait is requested from inside the running host loop."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        GitabraError.__init__(self, message, context=context)
        RuntimeError.__init__(self, message)


class GitCommandError(GitabraError):
    """Raised when a git invocation finishes with an unexpected exit code."""

    def __init__(
        self,
        message: str,
        *,
        argv: list[str] | None = None,
        exit_code: int | None = None,
        stderr: str | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        self.argv = list(argv or [])
        self.exit_code = exit_code
        self.stderr = stderr
        ctx = dict(context or {})
        if argv:
            ctx["argv"] = list(argv)
        if exit_code is not None:
            ctx["exit_code"] = exit_code
        if stderr:
            ctx["stderr"] = stderr
        super().__init__(message, context=ctx)


class GitTimeoutError(GitCommandError):
    """Raised when a git invocation did not finish within its bounded wait."""


class CommitError(GitabraError):
    """Generic commit rendezvous error."""


class CommitInProgressError(CommitError):
    """Raised when a commit is requested while another one is still being edited."""


class CommitEditmsgTimeoutError(CommitError):
    """Raised when `git commit` never reported the path of its message file."""


__all__ = [
    "GitabraError",
    "JobStateError",
    "HostLoopBusyError",
    "GitCommandError",
    "GitTimeoutError",
    "CommitError",
    "CommitInProgressError",
    "CommitEditmsgTimeoutError",
]
