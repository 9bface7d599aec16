"""Domain-specific configuration for the commit rendezvous."""
from __future__ import annotations

from functools import cached_property
from typing import Optional

from ..base import BaseDomainConfig


class CommitConfig(BaseDomainConfig):
    """Typed, cached access to the ``commit`` section.

    Extends BaseDomainConfig for consistent caching and repo_root handling.
    """

    def _config_section(self) -> str:
        return "commit"

    @cached_property
    def editmsg_timeout_ms(self) -> int:
        """How long to wait for the launcher to echo the message file path."""
        return int(self.section.get("editmsg_timeout_ms", 3000))

    @cached_property
    def release_timeout_ms(self) -> int:
        """How long to wait for `git commit` to exit after the sentinel is touched."""
        return int(self.section.get("release_timeout_ms", 1000))

    @cached_property
    def sentinel_poll_seconds(self) -> float:
        return float(self.section.get("sentinel_poll_seconds", 0.1))

    @cached_property
    def editor_variable(self) -> str:
        return str(self.section.get("editor_variable") or "GIT_EDITOR")

    @cached_property
    def home_variable(self) -> str:
        return str(self.section.get("home_variable") or "HOME")

    @cached_property
    def interactive_editor(self) -> Optional[str]:
        value = self.section.get("interactive_editor")
        return str(value) if value else None


__all__ = ["CommitConfig"]
