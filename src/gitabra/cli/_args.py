"""Common CLI argument registration utilities."""
from __future__ import annotations

import argparse


def add_json_flag(parser: argparse.ArgumentParser) -> None:
    """Add --json flag for JSON output mode."""
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )


def add_repo_root_flag(parser: argparse.ArgumentParser) -> None:
    """Add --repo-root flag for repository root override."""
    parser.add_argument(
        "--repo-root",
        type=str,
        help="Override repository root path",
    )


def add_timeout_flag(parser: argparse.ArgumentParser, default: int | None = None) -> None:
    """Add --timeout (milliseconds) for commands that wait on a process."""
    parser.add_argument(
        "--timeout",
        type=int,
        default=default,
        metavar="MS",
        help="Give up waiting after MS milliseconds (the process keeps running)",
    )


__all__ = [
    "add_json_flag",
    "add_repo_root_flag",
    "add_timeout_flag",
]
