"""
gitabra configuration: layered YAML, env overrides, schema validation and
typed per-domain accessors.
"""
from __future__ import annotations

from .base import BaseDomainConfig
from .cache import clear_all_caches, get_cached_config, is_cached
from .manager import ConfigManager
from .domains import CommitConfig, LoggingConfig, TimeoutsConfig

__all__ = [
    "BaseDomainConfig",
    "ConfigManager",
    "get_cached_config",
    "clear_all_caches",
    "is_cached",
    "CommitConfig",
    "LoggingConfig",
    "TimeoutsConfig",
]
