"""Small templating helper for shell snippets built from config values."""

from __future__ import annotations


class SafeDict(dict):
    """dict that preserves unknown `{placeholders}` instead of raising.

    Examples:
        >>> "sleep {interval}; {other}".format_map(SafeDict(interval="0.1"))
        'sleep 0.1; {other}'
    """

    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


__all__ = ["SafeDict"]
