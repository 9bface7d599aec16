"""
gitabra configuration management (YAML layers + env overrides).
"""
from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from gitabra.core.utils.io import iter_yaml_files, read_yaml
from gitabra.core.utils.merge import deep_merge
from gitabra.core.utils.paths import (
    get_project_config_dir,
    get_user_config_dir,
    resolve_project_root,
)
from gitabra.data import get_data_path

logger = logging.getLogger(__name__)

ENV_PREFIX = "GITABRA_"
CONFIG_SCHEMA = "config.schema.yaml"


class ConfigManager:
    """Load, merge, and validate gitabra configuration.

    Configuration sources (highest to lowest priority):
    1. Environment variables: GITABRA_<section>__<key>
    2. Project config: <repo>/.gitabra/config/*.yaml (alphabetical order)
    3. User config: <user-config-dir>/config/*.yaml (alphabetical order)
    4. Bundled defaults: gitabra.data/config/*.yaml (alphabetical order)
    """

    def __init__(self, repo_root: Optional[Path] = None) -> None:
        self.repo_root = Path(repo_root) if repo_root else resolve_project_root()
        self.core_config_dir = get_data_path("config")
        self.user_config_dir = get_user_config_dir() / "config"
        self.project_config_dir = get_project_config_dir(self.repo_root) / "config"

    def config_dirs(self) -> List[Path]:
        """Config directories in merge order (lowest priority first)."""
        return [self.core_config_dir, self.user_config_dir, self.project_config_dir]

    # ---------- env overrides ----------
    def _coerce_type(self, value: str) -> Any:
        s = value.strip()
        low = s.lower()
        if low in {"true", "false"}:
            return low == "true"
        if low in {"null", "none"}:
            return None
        if re.fullmatch(r"[-+]?\d+", s):
            return int(s)
        if re.fullmatch(r"[-+]?\d*\.\d+", s) or re.fullmatch(r"[-+]?\d+\.\d*", s):
            return float(s)
        if (s.startswith("{") and s.endswith("}")) or (s.startswith("[") and s.endswith("]")):
            try:
                return json.loads(s)
            except json.JSONDecodeError:
                return s
        return s

    def _iter_env_overrides(self) -> Iterator[Tuple[List[str], Any]]:
        for key in sorted(os.environ.keys()):
            if not key.startswith(ENV_PREFIX):
                continue
            raw = key[len(ENV_PREFIX):]
            # Only nested keys are overrides; GITABRA_HOME and friends are not.
            if "__" not in raw:
                continue
            path = [seg.lower() for seg in raw.split("__")]
            if any(not seg for seg in path):
                logger.warning("Ignoring malformed config override %s", key)
                continue
            yield path, self._coerce_type(os.environ[key])

    def apply_env_overrides(self, cfg: Dict[str, Any]) -> Dict[str, Any]:
        for path, value in self._iter_env_overrides():
            cur = cfg
            for part in path[:-1]:
                nxt = cur.get(part)
                if not isinstance(nxt, dict):
                    nxt = {}
                    cur[part] = nxt
                cur = nxt
            cur[path[-1]] = value
        return cfg

    # ---------- loading ----------
    def _load_directory(self, directory: Path, cfg: Dict[str, Any]) -> Dict[str, Any]:
        for path in iter_yaml_files(directory):
            # Fail closed: configuration must never silently ignore invalid YAML.
            data = read_yaml(path, default={}, raise_on_error=True)
            if not isinstance(data, dict):
                raise ValueError(f"Config file must contain a mapping: {path}")
            cfg = deep_merge(cfg, data)
        return cfg

    def _load_config_uncached(self, validate: bool = True) -> Dict[str, Any]:
        cfg: Dict[str, Any] = {}
        for directory in self.config_dirs():
            cfg = self._load_directory(directory, cfg)
        cfg = self.apply_env_overrides(cfg)
        if validate:
            self.validate(cfg)
        return cfg

    def load_config(self, validate: bool = True) -> Dict[str, Any]:
        """Return the merged configuration (cached per repo root)."""
        from .cache import get_cached_config

        return get_cached_config(repo_root=self.repo_root, validate=validate)

    def validate(self, cfg: Dict[str, Any]) -> None:
        from gitabra.core.schemas import validate_payload

        validate_payload(cfg, CONFIG_SCHEMA)


__all__ = ["ConfigManager", "ENV_PREFIX"]
