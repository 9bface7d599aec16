"""
gitabra git commit command.

SUMMARY: Commit staged changes, editing the message in your editor
"""

from __future__ import annotations

import argparse
import sys

from gitabra.cli import OutputFormatter, add_json_flag, add_repo_root_flag, get_repo_root
from gitabra.core.config import CommitConfig
from gitabra.core.editor import TerminalEditor
from gitabra.core.exceptions import GitabraError
from gitabra.core.git import CommitRendezvous

SUMMARY = "Commit staged changes, editing the message in your editor"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    parser.add_argument(
        "--amend",
        action="store_true",
        help="Amend the previous commit instead of creating a new one",
    )
    parser.add_argument(
        "--editor",
        type=str,
        help="Editor command (default: commit.interactive_editor, $VISUAL, $EDITOR, vi)",
    )
    add_json_flag(parser)
    add_repo_root_flag(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    repo_root = get_repo_root(args)

    editor = TerminalEditor(args.editor or CommitConfig(repo_root=repo_root).interactive_editor)
    rendezvous = CommitRendezvous(editor, repo_root=repo_root)

    try:
        session = rendezvous.start(amend=args.amend)
        if session is None:
            formatter.success(
                {"committed": False, "reason": "no_staged_changes"},
                "Nothing to commit.",
                status="noop",
            )
            return 1

        if session.buffer is None:
            rendezvous.abort()
            formatter.error(
                RuntimeError("Commit message buffer was not opened"),
                error_code="git_commit_error",
            )
            return 1

        editor_code = editor.interact(session.buffer)
        # Quitting without a write still leaves the window; release just in case.
        rendezvous.finish(session, "editor exited")
    except GitabraError as e:
        formatter.error(e, error_code="git_commit_error")
        return 1

    j = session.job
    summary = list(j.output[1:])
    if not j.done:
        formatter.error(
            RuntimeError(f"git commit is still running (pid {j.pid})"),
            error_code="git_commit_pending",
        )
        return 1

    committed = j.exit_code == 0
    formatter.success(
        {
            "committed": committed,
            "amend": session.amend,
            "exit_code": j.exit_code,
            "editor_exit_code": editor_code,
            "summary": summary,
            "stderr": list(j.err_output),
        },
        "\n".join(summary) if summary else ("Committed." if committed else "Commit aborted."),
        status="success" if committed else "failed",
    )
    return 0 if committed else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    sys.exit(main(parser.parse_args()))
