"""Jobs: one external process and its three standard streams.

A :class:`Job` spawns a program on the host loop and reports everything
through callbacks:

- ``on_stdout(job, err, chunk)`` / ``on_stderr(job, err, chunk)`` for each
  chunk of bytes, then once more with ``chunk=None`` at end of stream;
- ``on_exit(job, exit_code, signal)`` exactly once, when the process exits.

Output still in flight gets a short grace period (:data:`EXIT_DRAIN_SECONDS`)
after exit; a stream held open past that, for example by a grandchild that
inherited it, is closed by the teardown and reports its end after
``on_exit``. Callers must not assume buffers are final inside ``on_exit``.

Callbacks run on the host loop, one at a time. Errors never unwind into the
code that started the Job: a failed spawn is reported through ``on_exit``
with :data:`SPAWN_FAILED_EXIT_CODE`.

The blocking helpers at the bottom (:func:`wait`, :func:`wait_for`,
:func:`wait_all`) poll a ``done`` flag while the host loop runs; they work
with anything exposing ``done``, including the results of
:func:`gitabra.core.system.system_async`.
"""
from __future__ import annotations

import asyncio
import logging
import os
import shlex
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Union

from gitabra.core.exceptions import JobStateError
from gitabra.core.loop import DEFAULT_POLL_INTERVAL_MS, get_host_loop, host_wait

logger = logging.getLogger(__name__)

SPAWN_FAILED_EXIT_CODE = -1

# How long output may keep arriving after the process exited.
EXIT_DRAIN_SECONDS = 0.1

STDIN_FD = 0
STDOUT_FD = 1
STDERR_FD = 2

# Options consumed by system_async; never forwarded to the spawn call.
_WRAPPER_OPTIONS = frozenset({"split_lines", "merge_output", "encoding"})

Command = Union[str, Sequence[str]]
EnvOverrides = Union[Mapping[str, str], Iterable[str]]
StreamCallback = Callable[["Job", Optional[BaseException], Optional[bytes]], None]
ExitCallback = Callable[["Job", int, int], None]


class JobState(str, Enum):
    CREATED = "created"
    RUNNING = "running"
    TERMINATED = "terminated"


@dataclass
class SpawnOptions:
    """Everything needed to spawn a Job's process."""

    command: str
    args: List[str]
    env: Optional[Dict[str, str]] = None
    cwd: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


def merge_env(overrides: Optional[EnvOverrides]) -> Optional[Dict[str, str]]:
    """Merge ``overrides`` over the inherited environment.

    Accepts a mapping or ``NAME=value`` strings. Returns None when there is
    nothing to override so the child simply inherits ``os.environ``.
    """
    if not overrides:
        return None

    if isinstance(overrides, Mapping):
        pairs = [(str(k), str(v)) for k, v in overrides.items()]
    else:
        pairs = []
        for entry in overrides:
            name, sep, value = str(entry).partition("=")
            if not sep or not name:
                raise ValueError(f"Environment entry must look like NAME=value: {entry!r}")
            pairs.append((name, value))

    env = dict(os.environ)
    env.update(pairs)
    return env


def split_returncode(returncode: int) -> tuple[int, int]:
    """Map a Popen return code to ``(exit_code, signal)``.

    A process killed by signal N reports exit code ``128 + N``, as shells do.
    """
    if returncode < 0:
        return 128 - returncode, -returncode
    return returncode, 0


def _close_safely(resource: Optional[asyncio.BaseTransport]) -> None:
    if resource is not None and not resource.is_closing():
        resource.close()


class _JobProtocol(asyncio.SubprocessProtocol):
    """Forwards asyncio subprocess events to the owning Job."""

    def __init__(self, job: "Job") -> None:
        self._job = job

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self._job._attach(transport)  # type: ignore[arg-type]

    def pipe_data_received(self, fd: int, data: bytes) -> None:
        self._job._on_pipe_data(fd, data)

    def pipe_connection_lost(self, fd: int, exc: Optional[Exception]) -> None:
        self._job._on_pipe_closed(fd, exc)

    def process_exited(self) -> None:
        self._job._on_process_exited()


class Job:
    """Wraps one external process: spawn, stream capture, teardown, exit."""

    def __init__(
        self,
        cmd: Command,
        opt: Optional[Mapping[str, Any]] = None,
        *,
        on_stdout: Optional[StreamCallback] = None,
        on_stderr: Optional[StreamCallback] = None,
        on_exit: Optional[ExitCallback] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self.cmd = cmd
        self.opt: Dict[str, Any] = dict(opt or {})
        self.on_stdout = on_stdout
        self.on_stderr = on_stderr
        self.on_exit = on_exit
        self.loop = loop or get_host_loop()

        self.state = JobState.CREATED
        self.handle: Optional[asyncio.SubprocessTransport] = None
        self.stdin: Optional[asyncio.WriteTransport] = None
        self.stdout: Optional[asyncio.ReadTransport] = None
        self.stderr: Optional[asyncio.ReadTransport] = None

        self.exit_code: Optional[int] = None
        self.signal: Optional[int] = None
        self.spawn_error: Optional[BaseException] = None

        self._started = False
        self._finished = False
        self._returncode: Optional[int] = None
        self._open_streams: Set[int] = set()
        self._spawn_task: Optional[asyncio.Task] = None
        self._exit_drain: Optional[asyncio.TimerHandle] = None

    def __repr__(self) -> str:
        return f"<Job cmd={self.cmd!r} state={self.state.value} pid={self.pid}>"

    @property
    def done(self) -> bool:
        return self.state is JobState.TERMINATED

    @property
    def pid(self) -> Optional[int]:
        return self.handle.get_pid() if self.handle is not None else None

    # --- Lifecycle ------------------------------------------------------
    def options(self) -> SpawnOptions:
        """Build spawn options from ``cmd`` and ``opt``."""
        if isinstance(self.cmd, str):
            args = shlex.split(self.cmd)
        else:
            args = [str(part) for part in self.cmd]
        if not args:
            raise ValueError("Job command is empty")

        cwd = self.opt.get("cwd")
        extra = {
            k: v
            for k, v in self.opt.items()
            if k not in _WRAPPER_OPTIONS and k not in {"env", "cwd"}
        }
        return SpawnOptions(
            command=args[0],
            args=args[1:],
            env=merge_env(self.opt.get("env")),
            cwd=str(cwd) if cwd else None,
            extra=extra,
        )

    def start(self) -> "Job":
        """Spawn the process and begin reading its output.

        Outside the host loop this drives the loop until the spawn has
        happened; inside it the spawn is scheduled as a task. Either way the
        call returns without waiting for the process.
        """
        if self._started:
            raise JobStateError(
                "Job has already been started",
                context={"cmd": self.cmd, "state": self.state.value},
            )
        self._started = True

        coro = self._spawn()
        if self.loop.is_running():
            self._spawn_task = self.loop.create_task(coro)
        else:
            self.loop.run_until_complete(coro)
        return self

    async def _spawn(self) -> None:
        try:
            options = self.options()
            await self.loop.subprocess_exec(
                lambda: _JobProtocol(self),
                options.command,
                *options.args,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE if self.on_stdout else subprocess.DEVNULL,
                stderr=subprocess.PIPE if self.on_stderr else subprocess.DEVNULL,
                env=options.env,
                cwd=options.cwd,
                **options.extra,
            )
        except (OSError, ValueError, TypeError) as exc:
            # No caller stack to unwind into: report through the exit path.
            logger.warning("Failed to spawn %r: %s", self.cmd, exc)
            self.spawn_error = exc
            self.loop.call_soon(self._finish, SPAWN_FAILED_EXIT_CODE, 0)

    def send(self, data: Union[str, bytes]) -> None:
        """Write ``data`` to stdin, then half-close it."""
        if self.stdin is None:
            raise JobStateError(
                "Job has no stdin to write to; start it first",
                context={"cmd": self.cmd, "state": self.state.value},
            )
        if isinstance(data, str):
            data = data.encode("utf-8")
        self.stdin.write(data)
        self.stdin.write_eof()

    def stop(self) -> None:
        """Close stdin, stderr, stdout and the process handle; safe to repeat."""
        _close_safely(self.stdin)
        _close_safely(self.stderr)
        _close_safely(self.stdout)
        _close_safely(self.handle)

    def shutdown(self, code: int, signal: int) -> None:
        """Deliver the exit to ``on_exit``, then tear the streams down."""
        self.exit_code = code
        self.signal = signal
        try:
            if self.on_exit:
                self.on_exit(self, code, signal)
        finally:
            if self.on_stdout and self.stdout is not None:
                self.stdout.pause_reading()
            if self.on_stderr and self.stderr is not None:
                self.stderr.pause_reading()
            self.stop()
            self.state = JobState.TERMINATED

    # --- Protocol events ------------------------------------------------
    def _attach(self, transport: asyncio.SubprocessTransport) -> None:
        self.handle = transport
        self.stdin = transport.get_pipe_transport(STDIN_FD)  # type: ignore[assignment]
        self.stdout = transport.get_pipe_transport(STDOUT_FD)  # type: ignore[assignment]
        self.stderr = transport.get_pipe_transport(STDERR_FD)  # type: ignore[assignment]
        if self.stdout is not None:
            self._open_streams.add(STDOUT_FD)
        if self.stderr is not None:
            self._open_streams.add(STDERR_FD)
        if self.state is JobState.CREATED:
            self.state = JobState.RUNNING
        logger.debug("Spawned %r (pid %s)", self.cmd, self.pid)

    def _callback_for(self, fd: int) -> Optional[StreamCallback]:
        if fd == STDOUT_FD:
            return self.on_stdout
        if fd == STDERR_FD:
            return self.on_stderr
        return None

    def _on_pipe_data(self, fd: int, data: bytes) -> None:
        callback = self._callback_for(fd)
        if callback is not None:
            callback(self, None, data)

    def _on_pipe_closed(self, fd: int, exc: Optional[BaseException]) -> None:
        if fd not in self._open_streams:
            return
        self._open_streams.discard(fd)
        callback = self._callback_for(fd)
        if callback is not None:
            callback(self, exc, None)
        self._maybe_finish()

    def _on_process_exited(self) -> None:
        if self.handle is not None:
            self._returncode = self.handle.get_returncode()
        if self._returncode is None or self._finished:
            return
        if self._open_streams:
            # Streams may outlive the process; finish once the grace period is over.
            self._exit_drain = self.loop.call_later(
                EXIT_DRAIN_SECONDS, self._finish_exited, self._returncode
            )
        else:
            self._finish_exited(self._returncode)

    def _maybe_finish(self) -> None:
        if self._returncode is None or self._open_streams:
            return
        self._finish_exited(self._returncode)

    def _finish_exited(self, returncode: int) -> None:
        code, signal = split_returncode(returncode)
        self._finish(code, signal)

    def _finish(self, code: int, signal: int) -> None:
        if self._finished:
            return
        self._finished = True
        if self._exit_drain is not None:
            self._exit_drain.cancel()
            self._exit_drain = None
        logger.debug("%r exited with code %s (signal %s)", self.cmd, code, signal)
        self.shutdown(code, signal)


# ------------------------------------------------------------------------------------
# Waiting
#
# These work with Jobs and with system_async results alike: anything with a
# `done` attribute.


def is_job_done(job: Any) -> bool:
    return bool(job.done)


def are_jobs_done(jobs: Iterable[Any]) -> bool:
    # If any of the jobs are not done yet, we're not done
    return all(j.done for j in jobs)


def _loop_of(job: Any) -> Optional[asyncio.AbstractEventLoop]:
    loop = getattr(job, "loop", None)
    if loop is None:
        loop = getattr(getattr(job, "job", None), "loop", None)
    return loop


def wait_for(
    job: Any,
    ms: float,
    predicate: Callable[[], object],
    *,
    interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
) -> bool:
    """Wait until either ``ms`` has elapsed or ``predicate`` returns true."""
    return host_wait(ms, predicate, interval_ms, loop=_loop_of(job))


def wait(job: Any, ms: float, *, interval_ms: float = DEFAULT_POLL_INTERVAL_MS) -> bool:
    """Wait up to ``ms`` until ``job`` is done; False on timeout (the job keeps running)."""
    return host_wait(ms, lambda: job.done, interval_ms, loop=_loop_of(job))


def wait_all(
    jobs: Iterable[Any],
    ms: float,
    *,
    interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
) -> bool:
    """Wait up to ``ms`` until every job in ``jobs`` is done."""
    jobs = list(jobs)
    loop = _loop_of(jobs[0]) if jobs else None
    return host_wait(ms, lambda: are_jobs_done(jobs), interval_ms, loop=loop)


__all__ = [
    "SPAWN_FAILED_EXIT_CODE",
    "Job",
    "JobState",
    "SpawnOptions",
    "merge_env",
    "split_returncode",
    "is_job_done",
    "are_jobs_done",
    "wait",
    "wait_for",
    "wait_all",
]
