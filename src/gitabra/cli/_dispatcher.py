"""
Auto-discovery CLI dispatcher for gitabra.

Scans subfolders for commands and automatically registers them.
Adding new commands = just add a .py file to the appropriate subfolder.
"""

from __future__ import annotations

import argparse
import importlib
import logging
import sys
from collections.abc import Callable
from functools import lru_cache
from pathlib import Path
from typing import Any

from gitabra.core.loop import reset_host_loop

logger = logging.getLogger(__name__)


def _command_info(module: Any, default_summary: str) -> dict[str, Any]:
    return {
        "module": module,
        "summary": getattr(module, "SUMMARY", default_summary),
        "register_args": getattr(module, "register_args", None),
        "main": getattr(module, "main", None),
    }


@lru_cache(maxsize=1)
def discover_domains() -> dict[str, Path]:
    """
    Discover all CLI domain subfolders (git, ...).

    Returns:
        Dict mapping domain name to directory path
    """
    cli_dir = Path(__file__).parent
    domains = {}
    for item in cli_dir.iterdir():
        if item.name == "commands":
            continue
        if item.is_dir() and not item.name.startswith("_"):
            # Must have at least one non-init .py file
            has_commands = any(
                f.suffix == ".py" and not f.name.startswith("_")
                for f in item.iterdir()
            )
            if has_commands:
                domains[item.name] = item
    return domains


@lru_cache(maxsize=32)
def discover_root_commands() -> dict[str, dict[str, Any]]:
    """Discover top-level commands under cli/commands (no domain prefix)."""
    commands_dir = Path(__file__).parent / "commands"
    commands: dict[str, dict[str, Any]] = {}

    if not commands_dir.exists():
        return commands

    for item in commands_dir.glob("*.py"):
        if item.name.startswith("_"):
            continue

        cmd_name = item.stem
        try:
            module = importlib.import_module(f"gitabra.cli.commands.{cmd_name}")
        except ImportError as e:
            print(f"Warning: Could not import command {cmd_name}: {e}", file=sys.stderr)
            continue
        commands[cmd_name] = _command_info(module, cmd_name)

    return commands


@lru_cache(maxsize=32)
def discover_commands(domain: str) -> dict[str, dict[str, Any]]:
    """
    Discover all commands in a domain subfolder.

    Args:
        domain: Name of the domain (e.g., "git")

    Returns:
        Dict mapping command name to command info dict
    """
    domain_dir = Path(__file__).parent / domain
    commands: dict[str, dict[str, Any]] = {}

    for item in domain_dir.glob("*.py"):
        if item.name.startswith("_"):
            continue

        cmd_name = item.stem
        try:
            module = importlib.import_module(f"gitabra.cli.{domain}.{cmd_name}")
        except ImportError as e:
            # Skip modules with import errors (will be caught during actual use)
            print(f"Warning: Could not import {domain}.{cmd_name}: {e}", file=sys.stderr)
            continue
        commands[cmd_name] = _command_info(module, f"{domain} {cmd_name}")

    return commands


def _add_command(subparsers: Any, cmd_name: str, cmd_info: dict[str, Any]) -> None:
    primary_name = cmd_name.replace("_", "-")
    aliases = [cmd_name] if primary_name != cmd_name else []
    cmd_parser = subparsers.add_parser(
        primary_name,
        aliases=aliases,
        help=cmd_info["summary"],
    )
    # Let module register its own arguments
    if cmd_info["register_args"]:
        cmd_info["register_args"](cmd_parser)
    # Set the main function as default handler
    if cmd_info["main"]:
        cmd_parser.set_defaults(_func=cmd_info["main"])


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argument parser with auto-discovered domains and commands.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="gitabra",
        description="gitabra - drive git from an editor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log debug output to stderr (overrides logging.level).",
    )

    subparsers = parser.add_subparsers(
        dest="domain",
        title="domains",
        description="Available command domains",
        metavar="<domain>",
    )

    # Register top-level commands (no domain prefix)
    for cmd_name, cmd_info in sorted(discover_root_commands().items()):
        _add_command(subparsers, cmd_name, cmd_info)

    # Auto-register domains
    for domain_name in sorted(discover_domains().keys()):
        domain_commands = discover_commands(domain_name)
        if not domain_commands:
            continue

        domain_parser = subparsers.add_parser(
            domain_name,
            help=f"{domain_name.title()} commands",
        )
        cmd_subparsers = domain_parser.add_subparsers(
            dest="command",
            title="commands",
            description=f"Available {domain_name} commands",
            metavar="<command>",
        )
        for cmd_name, cmd_info in sorted(domain_commands.items()):
            _add_command(cmd_subparsers, cmd_name, cmd_info)

    return parser


def _get_version() -> str:
    from gitabra import __version__

    return __version__


def _configure_logging(verbose: bool, json_mode: bool) -> None:
    """Route stdlib logging per the ``logging`` config section.

    In JSON mode warnings are kept off stderr so error payloads stay parseable.
    """
    from gitabra.core.config import LoggingConfig
    from gitabra.core.utils.stdlib_logging import configure_stdlib_logging

    try:
        cfg = LoggingConfig()
        level, log_path = cfg.level, cfg.file
    except Exception as e:
        # A broken config must not prevent commands from reporting it.
        print(f"Warning: Could not load logging config: {e}", file=sys.stderr)
        level, log_path = "WARNING", None
    if verbose:
        level, log_path = "DEBUG", None
    elif json_mode and log_path is None and level in {"DEBUG", "INFO", "WARNING"}:
        level = "ERROR"
    configure_stdlib_logging(level=level, log_path=log_path)


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the gitabra CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = build_parser()
    args = parser.parse_args(argv)

    # If no domain specified, show help
    if not args.domain:
        parser.print_help()
        return 0

    func: Callable[[argparse.Namespace], int] | None = getattr(args, "_func", None)
    if func is None:
        # Domain without a command: show the domain's help
        domain_parser = parser._subparsers._group_actions[0].choices.get(args.domain)
        if domain_parser:
            domain_parser.print_help()
        return 0

    _configure_logging(
        verbose=bool(getattr(args, "verbose", False)),
        json_mode=bool(getattr(args, "json", False)),
    )

    try:
        return func(args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        reset_host_loop()


if __name__ == "__main__":
    sys.exit(main())
