"""I/O utilities for writing test files.

All functions create parent directories automatically if they don't exist.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


def write_yaml(path: Path, data: Any, *, sort_keys: bool = True) -> None:
    """Write data to YAML file, creating parent directories if needed."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data, sort_keys=sort_keys), encoding="utf-8")


def write_project_config(repo_root: Path, name: str, data: Any) -> Path:
    """Write ``<repo>/.gitabra/config/<name>.yaml`` and return its path."""
    path = Path(repo_root) / ".gitabra" / "config" / f"{name}.yaml"
    write_yaml(path, data)
    return path
