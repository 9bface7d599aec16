"""Run a command asynchronously and collect its output.

:func:`system_async` starts a :class:`~gitabra.core.job.Job` right away and
returns an :class:`AsyncCallResult`. The result's ``done`` flag flips when
the process exits; poll it, or block on it with
:func:`gitabra.core.job.wait`.
"""
from __future__ import annotations

import asyncio
import codecs
import logging
import re
from dataclasses import dataclass, field
from typing import Any, AnyStr, Generic, List, Optional

from gitabra.core.job import Command, EnvOverrides, Job
from gitabra.core.utils.time import nanotime

logger = logging.getLogger(__name__)

_TERMINATORS = re.compile(r"[\r\n]+")
_BYTE_TERMINATORS = re.compile(rb"[\r\n]+")


class LineSplitter(Generic[AnyStr]):
    """Turn a stream of chunks into complete lines.

    ``\\r``, ``\\n`` and any run of them end a line; empty lines are skipped.
    Text after the last terminator stays in ``pending`` until a later chunk
    completes it. :meth:`finish` discards whatever is still pending.
    """

    def __init__(self) -> None:
        self.pending: Optional[AnyStr] = None

    def feed(self, chunk: AnyStr) -> List[AnyStr]:
        data = chunk if self.pending is None else self.pending + chunk
        pattern = _BYTE_TERMINATORS if isinstance(data, bytes) else _TERMINATORS
        parts = pattern.split(data)  # type: ignore[arg-type]
        self.pending = parts.pop()
        return [p for p in parts if p]

    def finish(self) -> Optional[AnyStr]:
        """Drop and return the unterminated tail, if any."""
        tail, self.pending = self.pending, None
        return tail or None


@dataclass
class AsyncCallResult:
    """Output and timing of one :func:`system_async` call.

    ``output``/``err_output`` only grow until ``done`` turns true; ``exit_code``
    and ``stop_time`` are set at the same moment.
    """

    output: List[Any] = field(default_factory=list)
    err_output: List[Any] = field(default_factory=list)
    done: bool = False
    exit_code: Optional[int] = None
    signal: Optional[int] = None
    start_time: Optional[float] = None
    stop_time: Optional[float] = None
    elapsed_time: Optional[float] = None
    cancelled: bool = False
    job: Optional[Job] = field(default=None, repr=False)

    @property
    def pid(self) -> Optional[int]:
        return self.job.pid if self.job is not None else None

    @property
    def spawn_error(self) -> Optional[BaseException]:
        return self.job.spawn_error if self.job is not None else None

    def cancel(self) -> None:
        """Stop the underlying Job; ``cancelled`` stays true after it exits."""
        if self.done or self.job is None:
            return
        self.cancelled = True
        self.job.stop()


class _StreamCollector:
    """Decode one stream and append its fragments to a result list."""

    def __init__(
        self,
        result: AsyncCallResult,
        attr: str,
        *,
        split_lines: bool,
        encoding: Optional[str],
    ) -> None:
        self._result = result
        self._attr = attr
        self._decoder = (
            codecs.getincrementaldecoder(encoding)(errors="replace") if encoding else None
        )
        self._splitter: Optional[LineSplitter] = LineSplitter() if split_lines else None

    def feed(self, data: bytes) -> None:
        fragment = self._decoder.decode(data) if self._decoder else data
        self._emit(fragment)

    def close(self) -> None:
        if self._decoder is not None:
            self._emit(self._decoder.decode(b"", final=True))
        if self._splitter is not None:
            dropped = self._splitter.finish()
            if dropped:
                logger.debug("Dropping unterminated %s line: %r", self._attr, dropped)

    def _emit(self, fragment: Any) -> None:
        if not fragment:
            return
        bucket = getattr(self._result, self._attr)
        if self._splitter is not None:
            bucket.extend(self._splitter.feed(fragment))
        else:
            bucket.append(fragment)


def _concat(fragments: List[Any]) -> Any:
    return (b"" if isinstance(fragments[0], bytes) else "").join(fragments)


def system_async(
    cmd: Command,
    *,
    split_lines: bool = False,
    merge_output: bool = False,
    env: Optional[EnvOverrides] = None,
    encoding: Optional[str] = "utf-8",
    loop: Optional[asyncio.AbstractEventLoop] = None,
    **spawn_options: Any,
) -> AsyncCallResult:
    """Execute ``cmd`` asynchronously and return its :class:`AsyncCallResult`.

    Args:
        cmd: Argument list, or a string split with shell rules.
        split_lines: Collect complete lines instead of raw chunks.
        merge_output: Join all stdout fragments into one when the process exits.
        env: Variables merged over the inherited environment.
        encoding: Decode fragments to ``str``; None keeps raw ``bytes``.
        loop: Host loop override (defaults to the process-wide loop).
        **spawn_options: Passed through to the spawn call (``cwd``, ...).
    """
    result = AsyncCallResult()
    stdout = _StreamCollector(result, "output", split_lines=split_lines, encoding=encoding)
    stderr = _StreamCollector(result, "err_output", split_lines=split_lines, encoding=encoding)

    def on_stdout(job: Job, err: Optional[BaseException], data: Optional[bytes]) -> None:
        if err is not None:
            logger.error("Reading stdout of %r failed: %s", job.cmd, err)
        if data is None:
            stdout.close()
        else:
            stdout.feed(data)

    def on_stderr(job: Job, err: Optional[BaseException], data: Optional[bytes]) -> None:
        if err is not None:
            logger.error("Reading stderr of %r failed: %s", job.cmd, err)
        if data is None:
            stderr.close()
        else:
            stderr.feed(data)

    def on_exit(job: Job, code: int, signal: int) -> None:
        if merge_output and len(result.output) > 1:
            result.output = [_concat(result.output)]
        result.exit_code = code
        result.signal = signal
        result.done = True
        result.stop_time = nanotime()
        result.elapsed_time = result.stop_time - (result.start_time or result.stop_time)
        logger.debug("%r finished with %s in %.3fs", job.cmd, code, result.elapsed_time)

    opt = dict(spawn_options)
    if env:
        opt["env"] = env

    j = Job(cmd, opt, on_stdout=on_stdout, on_stderr=on_stderr, on_exit=on_exit, loop=loop)
    result.job = j
    result.start_time = nanotime()
    j.start()
    return result


__all__ = ["AsyncCallResult", "LineSplitter", "system_async"]
