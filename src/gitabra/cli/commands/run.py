"""
gitabra run command.

SUMMARY: Run a command asynchronously and report its output
"""

from __future__ import annotations

import argparse
import sys

from gitabra.cli import OutputFormatter, add_json_flag, add_timeout_flag
from gitabra.core.job import wait

SUMMARY = "Run a command asynchronously and report its output"

DEFAULT_TIMEOUT_MS = 60_000


def register_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "argv",
        nargs=argparse.REMAINDER,
        help="Command to run (use `--` before the command).",
    )
    parser.add_argument(
        "--split-lines",
        action="store_true",
        help="Collect output as complete lines",
    )
    parser.add_argument(
        "--merge-output",
        action="store_true",
        help="Join stdout into a single fragment",
    )
    parser.add_argument(
        "--cwd",
        type=str,
        help="Working directory for the command",
    )
    add_timeout_flag(parser, default=DEFAULT_TIMEOUT_MS)
    add_json_flag(parser)


def main(args: argparse.Namespace) -> int:
    from gitabra.core.system import system_async

    formatter = OutputFormatter(json_mode=getattr(args, "json", False))

    argv = list(getattr(args, "argv", []) or [])
    if argv and argv[0] == "--":
        argv = argv[1:]
    if not argv:
        formatter.error(ValueError("Usage: gitabra run -- <command> [args...]"), error_code="missing_command")
        return 2

    j = system_async(
        argv,
        split_lines=args.split_lines,
        merge_output=args.merge_output,
        cwd=args.cwd,
    )
    if not wait(j, args.timeout):
        j.cancel()
        formatter.error(
            TimeoutError(f"{argv[0]} did not finish within {args.timeout}ms"),
            error_code="timeout",
        )
        return 124

    if j.spawn_error is not None:
        formatter.error(j.spawn_error, error_code="spawn_failed")
        return 127

    if formatter.json_mode:
        formatter.json_output(
            {
                "argv": argv,
                "output": j.output,
                "err_output": j.err_output,
                "exit_code": j.exit_code,
                "signal": j.signal,
                "elapsed_time": j.elapsed_time,
            }
        )
    else:
        sep = "\n" if args.split_lines else ""
        if j.output:
            sys.stdout.write(sep.join(j.output) + sep)
        if j.err_output:
            sys.stderr.write(sep.join(j.err_output) + sep)
    return j.exit_code or 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    sys.exit(main(parser.parse_args()))
