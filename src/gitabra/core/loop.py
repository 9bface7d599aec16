"""The host event loop that drives every Job.

gitabra runs on one cooperative, single-threaded asyncio loop. Process
spawns, pipe reads and exit notifications are loop callbacks; nothing
advances unless the loop runs. Blocking callers run it in short slices
through :func:`host_wait` until their condition holds or a deadline passes.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional

from gitabra.core.exceptions import HostLoopBusyError

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_MS = 5

_host_loop: Optional[asyncio.AbstractEventLoop] = None


def get_host_loop() -> asyncio.AbstractEventLoop:
    """Return the process-wide host loop, creating it on first use."""
    global _host_loop
    if _host_loop is None or _host_loop.is_closed():
        _host_loop = asyncio.new_event_loop()
    return _host_loop


def set_host_loop(loop: Optional[asyncio.AbstractEventLoop]) -> None:
    global _host_loop
    _host_loop = loop


def reset_host_loop() -> None:
    """Close the current host loop; the next :func:`get_host_loop` makes a new one."""
    global _host_loop
    loop, _host_loop = _host_loop, None
    if loop is None or loop.is_closed():
        return
    if loop.is_running():
        raise HostLoopBusyError("Cannot close the host loop while it is running")
    try:
        loop.run_until_complete(loop.shutdown_asyncgens())
    finally:
        loop.close()


def pump(seconds: float, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
    """Run the host loop for one slice of ``seconds`` so queued callbacks execute."""
    loop = loop or get_host_loop()
    if loop.is_running():
        raise HostLoopBusyError(
            "Cannot block inside the running host loop; schedule the work instead"
        )
    loop.run_until_complete(asyncio.sleep(max(0.0, seconds)))


def host_wait(
    timeout_ms: float,
    predicate: Callable[[], object],
    interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
    loop: Optional[asyncio.AbstractEventLoop] = None,
) -> bool:
    """Block until ``predicate()`` is truthy or ``timeout_ms`` elapses.

    The predicate is checked before anything else, so an already satisfied
    condition returns True at once even with a zero timeout. Otherwise the
    loop runs in slices of ``interval_ms`` with a re-check after each one.
    A timeout only stops the waiting; it never cancels the work.

    Returns:
        True if the predicate held before the deadline, else False.
    """
    if predicate():
        return True

    loop = loop or get_host_loop()
    if loop.is_running():
        raise HostLoopBusyError(
            "Cannot block inside the running host loop; schedule the work instead"
        )

    interval = max(float(interval_ms), 1.0) / 1000.0
    deadline = time.monotonic() + max(float(timeout_ms), 0.0) / 1000.0
    while True:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return bool(predicate())
        pump(min(interval, remaining), loop)
        if predicate():
            return True


__all__ = [
    "DEFAULT_POLL_INTERVAL_MS",
    "get_host_loop",
    "set_host_loop",
    "reset_host_loop",
    "pump",
    "host_wait",
]
