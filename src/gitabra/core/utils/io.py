"""YAML reading for configuration files."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator

import yaml


def read_yaml(path: Path, default: Any = None, raise_on_error: bool = False) -> Any:
    """Read YAML with error handling.

    Returns ``default`` if the file is missing, empty or invalid, unless
    ``raise_on_error`` is True.

    Examples:
        >>> config = read_yaml(Path("commit.yaml"), default={})
        >>> assert isinstance(config, dict)
    """
    path = Path(path)
    if not path.exists():
        if raise_on_error:
            raise FileNotFoundError(f"File not found: {path}")
        return default

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if data is not None else default
    except (OSError, yaml.YAMLError):
        if raise_on_error:
            raise
        return default


def iter_yaml_files(directory: Path) -> Iterator[Path]:
    """Yield ``*.yaml``/``*.yml`` files in ``directory`` in alphabetical order."""
    if not directory.is_dir():
        return
    files = [p for p in directory.iterdir() if p.is_file() and p.suffix in {".yaml", ".yml"}]
    yield from sorted(files, key=lambda p: p.name)


__all__ = ["read_yaml", "iter_yaml_files"]
