"""Monotonic clock helpers used for call timing."""
from __future__ import annotations

from time import perf_counter_ns


def nanotime() -> float:
    """Return a monotonic timestamp in seconds with sub-second resolution."""
    return perf_counter_ns() / 1_000_000_000


__all__ = ["nanotime"]
