"""Domain-specific configuration accessors.

- TimeoutsConfig: bounded waits used by git helpers
- CommitConfig: commit rendezvous deadlines and launcher settings
- LoggingConfig: log level and destination
"""
from __future__ import annotations

from .commit import CommitConfig
from .logging import LoggingConfig
from .timeouts import TimeoutsConfig

__all__: list[str] = [
    "CommitConfig",
    "LoggingConfig",
    "TimeoutsConfig",
]
