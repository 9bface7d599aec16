"""
gitabra core library.

Process control (``job``, ``system``, ``loop``), editor hosts (``editor``),
git helpers and the commit rendezvous (``git``), configuration (``config``).
"""
from __future__ import annotations

from .exceptions import (
    GitabraError,
    JobStateError,
    HostLoopBusyError,
    GitCommandError,
    GitTimeoutError,
    CommitError,
    CommitInProgressError,
    CommitEditmsgTimeoutError,
)

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
