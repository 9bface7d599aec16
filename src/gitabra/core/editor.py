"""Editor hosts: buffers, buffer options, per-buffer lifecycle hooks.

The commit rendezvous needs very little from an editor: open a file in a
buffer, set a couple of buffer options, subscribe to three buffer events and
show a message. :class:`EditorHost` captures that surface.
:class:`HeadlessEditor` keeps buffers in memory and fires events when told
to; :class:`TerminalEditor` hands the file to the user's terminal editor.
"""
from __future__ import annotations

import itertools
import logging
import os
import shlex
import subprocess
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class BufferEvent(str, Enum):
    WRITE_POST = "BufWritePost"
    WIN_LEAVE = "BufWinLeave"
    WIPEOUT = "BufWipeout"


HookCallback = Callable[["Buffer", BufferEvent], Any]


@dataclass
class Buffer:
    number: int
    path: Path
    lines: List[str] = field(default_factory=list)
    options: Dict[str, Any] = field(default_factory=dict)
    hooks: Dict[BufferEvent, List[HookCallback]] = field(default_factory=dict, repr=False)
    wiped: bool = False

    @property
    def text(self) -> str:
        return "".join(f"{line}\n" for line in self.lines)


class EditorHost(ABC):
    """What gitabra consumes from an editor."""

    def __init__(self) -> None:
        self.buffers: Dict[int, Buffer] = {}
        self.current: Optional[Buffer] = None
        self._numbers = itertools.count(1)

    @abstractmethod
    def notify(self, message: str) -> None:
        """Show ``message`` to the user."""

    def edit(self, path: Path | str) -> Buffer:
        """Open ``path`` in a new buffer and make it current."""
        p = Path(path)
        text = p.read_text(encoding="utf-8", errors="replace") if p.exists() else ""
        buffer = Buffer(number=next(self._numbers), path=p, lines=text.splitlines())
        self.buffers[buffer.number] = buffer
        self.current = buffer
        logger.debug("Opened buffer %s for %s", buffer.number, p)
        return buffer

    def set_option(self, buffer: Buffer, name: str, value: Any) -> None:
        buffer.options[name] = value

    def on(self, buffer: Buffer, event: BufferEvent, callback: HookCallback) -> None:
        """Run ``callback(buffer, event)`` whenever ``event`` fires for ``buffer``."""
        buffer.hooks.setdefault(BufferEvent(event), []).append(callback)

    def clear_hooks(self, buffer: Buffer) -> None:
        buffer.hooks.clear()

    def emit(self, buffer: Buffer, event: BufferEvent) -> int:
        """Fire ``event`` on ``buffer``; returns how many hooks ran."""
        callbacks = list(buffer.hooks.get(BufferEvent(event), ()))
        for callback in callbacks:
            callback(buffer, BufferEvent(event))
        return len(callbacks)


class HeadlessEditor(EditorHost):
    """In-memory editor host; events fire only when the caller asks."""

    def __init__(self) -> None:
        super().__init__()
        self.messages: List[str] = []

    def notify(self, message: str) -> None:
        self.messages.append(message)
        logger.info("%s", message)

    def write(self, buffer: Buffer, text: Optional[str] = None) -> None:
        """Persist the buffer (optionally replacing its text), then fire BufWritePost."""
        if text is not None:
            buffer.lines = text.splitlines()
        buffer.path.write_text(buffer.text, encoding="utf-8")
        self.emit(buffer, BufferEvent.WRITE_POST)

    def hide(self, buffer: Buffer) -> None:
        """Leave the buffer's window; a ``bufhidden=wipe`` buffer is wiped too."""
        if buffer.wiped:
            return
        self.emit(buffer, BufferEvent.WIN_LEAVE)
        if self.current is buffer:
            self.current = None
        if buffer.options.get("bufhidden") == "wipe":
            self.wipe(buffer)

    def wipe(self, buffer: Buffer) -> None:
        if buffer.wiped:
            return
        self.emit(buffer, BufferEvent.WIPEOUT)
        buffer.wiped = True
        self.clear_hooks(buffer)
        self.buffers.pop(buffer.number, None)
        if self.current is buffer:
            self.current = None


class TerminalEditor(HeadlessEditor):
    """Edit buffers with the user's terminal editor.

    :meth:`interact` blocks until the editor exits. A changed file counts as
    a write; the buffer is hidden afterwards either way.
    """

    def __init__(self, command: Optional[str] = None) -> None:
        super().__init__()
        self.command = command

    def resolve_command(self) -> List[str]:
        raw = self.command or os.environ.get("VISUAL") or os.environ.get("EDITOR") or "vi"
        return shlex.split(raw)

    def notify(self, message: str) -> None:
        self.messages.append(message)
        print(message, file=sys.stderr)

    def interact(self, buffer: Buffer) -> int:
        """Run the editor on ``buffer`` and return its exit code."""
        before = _fingerprint(buffer.path)
        argv = [*self.resolve_command(), str(buffer.path)]
        logger.debug("Launching editor: %s", argv)
        cp = subprocess.run(argv, check=False)
        if _fingerprint(buffer.path) != before:
            buffer.lines = buffer.path.read_text(encoding="utf-8", errors="replace").splitlines()
            self.emit(buffer, BufferEvent.WRITE_POST)
        self.hide(buffer)
        return cp.returncode


def _fingerprint(path: Path) -> Optional[tuple[int, int]]:
    try:
        st = path.stat()
    except OSError:
        return None
    return st.st_mtime_ns, st.st_size


__all__ = [
    "BufferEvent",
    "Buffer",
    "EditorHost",
    "HeadlessEditor",
    "TerminalEditor",
]
