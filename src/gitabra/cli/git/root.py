"""
gitabra git root command.

SUMMARY: Print the root of the current git work tree
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from gitabra.cli import OutputFormatter, add_json_flag, add_timeout_flag
from gitabra.core.git import git_root_dir

SUMMARY = "Print the root of the current git work tree"


def register_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--cwd",
        type=str,
        help="Directory to start from (default: current directory)",
    )
    add_timeout_flag(parser)
    add_json_flag(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    cwd = Path(args.cwd).resolve() if args.cwd else Path.cwd()

    root = git_root_dir(cwd, timeout_ms=args.timeout)
    if root is None:
        formatter.error(
            RuntimeError(f"Not inside a git work tree: {cwd}"),
            error_code="not_a_repository",
        )
        return 1

    formatter.success({"root": str(root)}, str(root))
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    sys.exit(main(parser.parse_args()))
