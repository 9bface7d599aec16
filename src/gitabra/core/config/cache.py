"""Centralized configuration caching.

Provides a single source of truth for loaded configuration across all
domain configs.
"""
from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import Any, Dict, Optional

from gitabra.core.utils.paths import resolve_project_root

_config_cache: Dict[str, Dict[str, Any]] = {}


def _cache_key(repo_root: Path) -> str:
    # Tests and long-running editors may mutate GITABRA_* env vars and
    # rewrite YAML files after an initial load; fingerprint both.
    from .manager import ConfigManager

    env_items = sorted((k, v) for k, v in os.environ.items() if k.startswith("GITABRA_"))
    env_fp = hashlib.sha256(repr(env_items).encode("utf-8")).hexdigest()[:12]

    files = []
    for directory in ConfigManager(repo_root).config_dirs()[1:]:
        if not directory.is_dir():
            continue
        for p in sorted(directory.iterdir()):
            try:
                st = p.stat()
                files.append((str(p), st.st_mtime_ns, st.st_size))
            except OSError:
                files.append((str(p), 0, 0))
    cfg_fp = hashlib.sha256(repr(files).encode("utf-8")).hexdigest()[:12]

    return f"{repo_root}:env={env_fp}:cfg={cfg_fp}"


def get_cached_config(repo_root: Optional[Path] = None, validate: bool = True) -> Dict[str, Any]:
    """Get configuration with caching.

    Returns the same config dict instance for the same repo_root while
    neither the environment nor the overlay files change. Treat it as
    immutable.
    """
    from .manager import ConfigManager

    root = Path(repo_root).expanduser().resolve() if repo_root else resolve_project_root()
    key = _cache_key(root)
    if key not in _config_cache:
        _config_cache[key] = ConfigManager(root)._load_config_uncached(validate=validate)
    return _config_cache[key]


def clear_all_caches() -> None:
    """Clear the configuration cache (call after config files change)."""
    _config_cache.clear()


def is_cached(repo_root: Optional[Path] = None) -> bool:
    root = Path(repo_root).expanduser().resolve() if repo_root else resolve_project_root()
    return _cache_key(root) in _config_cache


__all__ = ["get_cached_config", "clear_all_caches", "is_cached"]
