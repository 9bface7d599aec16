"""Domain-specific configuration for bounded waits."""
from __future__ import annotations

from functools import cached_property
from typing import Dict

from ..base import BaseDomainConfig

_REQUIRED_TIMEOUT_KEYS = (
    "wait_poll_interval_ms",
    "staged_check_ms",
    "root_dir_ms",
)


class TimeoutsConfig(BaseDomainConfig):
    """Typed, cached access to the ``timeouts`` section (all values in ms)."""

    def _config_section(self) -> str:
        return "timeouts"

    def _validate_required_keys(self) -> None:
        if not self.section:
            raise RuntimeError("timeouts section missing from configuration")
        for key in _REQUIRED_TIMEOUT_KEYS:
            if key not in self.section:
                raise RuntimeError(f"timeouts.{key} missing from configuration")

    @cached_property
    def wait_poll_interval_ms(self) -> int:
        self._validate_required_keys()
        return int(self.section["wait_poll_interval_ms"])

    @cached_property
    def staged_check_ms(self) -> int:
        """Deadline for `git diff --cached --exit-code`."""
        self._validate_required_keys()
        return int(self.section["staged_check_ms"])

    @cached_property
    def root_dir_ms(self) -> int:
        """Deadline for `git rev-parse --show-toplevel`."""
        self._validate_required_keys()
        return int(self.section["root_dir_ms"])

    def get_all_settings(self) -> Dict[str, int]:
        self._validate_required_keys()
        return {key: int(self.section[key]) for key in _REQUIRED_TIMEOUT_KEYS}


__all__ = ["TimeoutsConfig"]
