"""Domain-specific configuration for gitabra logging."""

from __future__ import annotations

from functools import cached_property
from pathlib import Path
from typing import Optional

from ..base import BaseDomainConfig


class LoggingConfig(BaseDomainConfig):
    def _config_section(self) -> str:
        return "logging"

    @cached_property
    def level(self) -> str:
        return str(self.section.get("level") or "WARNING").upper()

    @cached_property
    def file(self) -> Optional[Path]:
        """Log file path; relative paths resolve against the repo root."""
        raw = self.section.get("file")
        if not raw:
            return None
        p = Path(str(raw)).expanduser()
        return p if p.is_absolute() else self.repo_root / p


__all__ = ["LoggingConfig"]
