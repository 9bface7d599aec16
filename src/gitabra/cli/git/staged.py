"""
gitabra git staged command.

SUMMARY: Report whether the index has staged changes
"""

from __future__ import annotations

import argparse
import sys

from gitabra.cli import (
    OutputFormatter,
    add_json_flag,
    add_repo_root_flag,
    add_timeout_flag,
    get_repo_root,
)
from gitabra.core.exceptions import GitCommandError
from gitabra.core.git import git_has_staged_changes

SUMMARY = "Report whether the index has staged changes"


def register_args(parser: argparse.ArgumentParser) -> None:
    add_timeout_flag(parser)
    add_json_flag(parser)
    add_repo_root_flag(parser)


def main(args: argparse.Namespace) -> int:
    """Exit 0 when changes are staged, 1 when the index is clean, 2 on error."""
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    repo_root = get_repo_root(args)

    try:
        staged = git_has_staged_changes(repo_root, timeout_ms=args.timeout)
    except GitCommandError as e:
        formatter.error(e, error_code="git_staged_error")
        return 2

    formatter.success(
        {"staged": staged, "repo_root": str(repo_root)},
        "Staged changes present." if staged else "No staged changes.",
    )
    return 0 if staged else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    sys.exit(main(parser.parse_args()))
