from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

_CONFIGURED_KEY: tuple[str, str] | None = None
_GITABRA_HANDLER: logging.Handler | None = None

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _level_from_name(name: str) -> int:
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else logging.INFO


def configure_stdlib_logging(*, level: str = "WARNING", log_path: Optional[Path] = None) -> None:
    """Configure Python stdlib logging for gitabra.

    Writes to ``log_path`` when given, otherwise to stderr (never stdout, so
    ``--json`` output stays machine readable). Idempotent per-process: if
    already configured for the same target and level, no-op.
    """
    global _CONFIGURED_KEY, _GITABRA_HANDLER

    target = str(Path(log_path).resolve()) if log_path else "<stderr>"
    key = (target, str(level).upper())
    if _CONFIGURED_KEY == key and _GITABRA_HANDLER is not None:
        return

    root = logging.getLogger()
    root.setLevel(_level_from_name(level))

    # Replace the handler we installed earlier when switching targets.
    if _GITABRA_HANDLER is not None:
        root.removeHandler(_GITABRA_HANDLER)
        _GITABRA_HANDLER.close()
        _GITABRA_HANDLER = None

    handler: logging.Handler
    if log_path:
        Path(target).parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(target, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(_level_from_name(level))
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)

    _GITABRA_HANDLER = handler
    _CONFIGURED_KEY = key


def reset_stdlib_logging_for_tests() -> None:
    """Test-only: remove the handler installed by :func:`configure_stdlib_logging`."""
    global _CONFIGURED_KEY, _GITABRA_HANDLER
    if _GITABRA_HANDLER is not None:
        logging.getLogger().removeHandler(_GITABRA_HANDLER)
        _GITABRA_HANDLER.close()
    _CONFIGURED_KEY = None
    _GITABRA_HANDLER = None


__all__ = ["configure_stdlib_logging", "reset_stdlib_logging_for_tests"]
