"""Shared helpers for gitabra core (text, time, paths, config I/O, logging)."""
from __future__ import annotations

from .text import (
    lines,
    lines_array,
    remove_trailing_newlines,
    str_is_empty,
    str_is_really_empty,
)
from .time import nanotime

__all__ = [
    "lines",
    "lines_array",
    "remove_trailing_newlines",
    "str_is_empty",
    "str_is_really_empty",
    "nanotime",
]
