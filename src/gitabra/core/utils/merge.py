"""Deep merge used to layer configuration sources."""
from __future__ import annotations

from typing import Any, Dict


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge dictionaries without mutating inputs.

    Nested mappings merge key by key; any other value in ``override``
    (lists included) replaces the value in ``base``.

    Example:
        >>> deep_merge({"commit": {"a": 1, "b": 2}}, {"commit": {"b": 3}})
        {'commit': {'a': 1, 'b': 3}}
    """
    result: Dict[str, Any] = dict(base)
    for key, value in (override or {}).items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = deep_merge(current, value)
        else:
            result[key] = value
    return result


__all__ = ["deep_merge"]
