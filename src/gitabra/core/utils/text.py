"""String helpers shared by the process layer and the commit rendezvous."""
from __future__ import annotations

import re
from typing import AnyStr, Iterator, List, Optional

_LINE = re.compile(r"[^\r\n]+")
_TRAILING_NEWLINES = re.compile(r"[\r\n]+$")
_BLANK = re.compile(r"^\s*$")


def lines(text: str) -> Iterator[str]:
    """Iterate over the non-empty lines of ``text``.

    Any run of ``\\r``/``\\n`` characters is a single separator, so blank
    lines are skipped.
    """
    for match in _LINE.finditer(text):
        yield match.group(0)


def lines_array(text: str) -> List[str]:
    return list(lines(text))


def remove_trailing_newlines(text: AnyStr) -> AnyStr:
    if isinstance(text, bytes):
        return text.rstrip(b"\r\n")
    return _TRAILING_NEWLINES.sub("", text)


def str_is_empty(text: Optional[str]) -> bool:
    return text is None or text == ""


def str_is_really_empty(text: Optional[str]) -> bool:
    """True for ``None``, the empty string, or whitespace-only strings."""
    if str_is_empty(text):
        return True
    return bool(_BLANK.match(text))  # type: ignore[arg-type]


__all__ = [
    "lines",
    "lines_array",
    "remove_trailing_newlines",
    "str_is_empty",
    "str_is_really_empty",
]
