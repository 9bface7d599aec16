"""Commit rendezvous against real `git commit` processes."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

from gitabra.core.editor import BufferEvent, HeadlessEditor
from gitabra.core.exceptions import CommitEditmsgTimeoutError, CommitInProgressError
from gitabra.core.git import CommitRendezvous, CommitState, make_editor_script
from gitabra.core.git.commit import RELEASE_EVENTS, sentinel_path
from gitabra.core.job import wait

from helpers.git_helpers import git, git_log_subjects, git_stage
from helpers.timeouts import GIT_WAIT_MS

pytestmark = [
    pytest.mark.requires_git,
    pytest.mark.skipif(sys.platform == "win32", reason="editor launcher is a POSIX shell script"),
]


@pytest.fixture
def editor() -> HeadlessEditor:
    return HeadlessEditor()


@pytest.fixture
def rendezvous(git_repo: Path, editor: HeadlessEditor) -> CommitRendezvous:
    return CommitRendezvous(
        editor,
        repo_root=git_repo,
        editmsg_timeout_ms=GIT_WAIT_MS,
        release_timeout_ms=GIT_WAIT_MS,
    )


class TestEditorScript:
    def test_sentinel_is_temp_path_with_exit_suffix(self, tmp_path: Path) -> None:
        assert sentinel_path(tmp_path / "commit") == tmp_path / "commit.exit"

    def test_script_quotes_sentinel_and_polls(self, tmp_path: Path) -> None:
        temp_path = tmp_path / "with space" / "commit"
        script = make_editor_script(temp_path, poll_seconds=0.25)

        assert script.startswith('sh -c "')
        assert f"'{temp_path}.exit'" in script
        assert "sleep 0.25" in script
        assert 'echo \\"$1\\"' in script
        assert script.rstrip().endswith('exit 0"')


def test_nothing_staged_notifies_and_starts_nothing(
    rendezvous: CommitRendezvous, editor: HeadlessEditor
) -> None:
    assert rendezvous.start() is None

    assert editor.messages == ["No staged changes to commit"]
    assert not rendezvous.active
    assert rendezvous.state is CommitState.IDLE
    assert editor.buffers == {}


def test_write_releases_git_and_creates_commit(
    git_repo: Path, rendezvous: CommitRendezvous, editor: HeadlessEditor
) -> None:
    git_stage(git_repo, "feature.txt", "feature\n")

    session = rendezvous.start()
    assert session is not None
    assert rendezvous.state is CommitState.EDITING
    assert rendezvous.active
    assert session.editmsg_path is not None
    assert session.editmsg_path.name == "COMMIT_EDITMSG"
    assert session.editmsg_path.is_absolute()
    assert session.buffer is editor.current
    assert session.buffer.path == session.editmsg_path
    assert session.buffer.options == {"bufhidden": "wipe", "swapfile": False}
    assert set(session.buffer.hooks) == set(RELEASE_EVENTS)
    assert not session.job.done

    editor.write(session.buffer, "Add feature\n\nWith a body.")

    assert session.job.done
    assert session.job.exit_code == 0
    assert not rendezvous.active
    assert rendezvous.state is CommitState.IDLE
    assert git_log_subjects(git_repo)[0] == "Add feature"
    assert not session.temp_path.parent.exists()


def test_buffer_events_after_release_are_ignored(
    git_repo: Path, rendezvous: CommitRendezvous, editor: HeadlessEditor
) -> None:
    git_stage(git_repo, "a.txt", "a\n")
    session = rendezvous.start()
    assert session is not None
    buf = session.buffer

    editor.write(buf, "Only once")
    # Leaving and wiping the buffer fire the same hooks again.
    editor.hide(buf)

    assert buf.wiped
    assert rendezvous.finish(session) is False
    assert git_log_subjects(git_repo)[:2] == ["Only once", "Initial commit"]


def test_wiping_without_writing_aborts_commit(
    git_repo: Path, rendezvous: CommitRendezvous, editor: HeadlessEditor
) -> None:
    git_stage(git_repo, "b.txt", "b\n")
    session = rendezvous.start()
    assert session is not None

    editor.wipe(session.buffer)

    assert session.job.done
    assert session.job.exit_code != 0
    assert git_log_subjects(git_repo) == ["Initial commit"]
    # git's complaint is surfaced to the user.
    assert editor.messages
    assert not rendezvous.active


def test_second_commit_while_editing_is_rejected(
    git_repo: Path, rendezvous: CommitRendezvous, editor: HeadlessEditor
) -> None:
    git_stage(git_repo, "c.txt", "c\n")
    session = rendezvous.start()
    assert session is not None

    with pytest.raises(CommitInProgressError) as exc_info:
        rendezvous.start()
    assert exc_info.value.context["pid"] == session.job.pid
    assert rendezvous.session is session

    editor.write(session.buffer, "First wins")
    assert git_log_subjects(git_repo)[0] == "First wins"


def test_stale_session_is_discarded(
    git_repo: Path, rendezvous: CommitRendezvous, editor: HeadlessEditor
) -> None:
    git_stage(git_repo, "d.txt", "d\n")
    stale = rendezvous.start()
    assert stale is not None
    stale.job.cancel()
    assert wait(stale.job, GIT_WAIT_MS)

    fresh = rendezvous.start()
    assert fresh is not None
    assert fresh is not stale
    assert rendezvous.session is fresh
    assert not stale.temp_path.parent.exists()

    editor.write(fresh.buffer, "After a crash")
    assert git_log_subjects(git_repo)[0] == "After a crash"


def test_amend_rewrites_last_commit_without_staged_changes(
    git_repo: Path, rendezvous: CommitRendezvous, editor: HeadlessEditor
) -> None:
    session = rendezvous.start(amend=True)
    assert session is not None
    assert session.amend
    assert "Initial commit" in session.buffer.lines

    editor.write(session.buffer, "Reworded initial commit")

    assert session.job.exit_code == 0
    assert git_log_subjects(git_repo) == ["Reworded initial commit"]


def test_missing_editmsg_path_times_out_and_cleans_up(
    git_repo: Path, editor: HeadlessEditor
) -> None:
    git_stage(git_repo, "e.txt", "e\n")
    rendezvous = CommitRendezvous(
        editor,
        repo_root=git_repo,
        editmsg_timeout_ms=0,
        release_timeout_ms=GIT_WAIT_MS,
    )

    with pytest.raises(CommitEditmsgTimeoutError) as exc_info:
        rendezvous.start()

    assert exc_info.value.context["timeout_ms"] == 0
    assert exc_info.value.context["argv"] == ["git", "commit"]
    assert not rendezvous.active
    assert rendezvous.state is CommitState.IDLE
    assert editor.buffers == {}
    assert git_log_subjects(git_repo) == ["Initial commit"]


def test_abort_releases_pending_commit(
    git_repo: Path, rendezvous: CommitRendezvous, editor: HeadlessEditor
) -> None:
    git_stage(git_repo, "f.txt", "f\n")
    session = rendezvous.start()
    assert session is not None

    assert rendezvous.abort() is True
    assert rendezvous.abort() is False

    assert session.job.done
    assert not rendezvous.active
    assert git_log_subjects(git_repo) == ["Initial commit"]
    # Index is untouched: the change can still be committed.
    assert "f.txt" in git(git_repo, "diff", "--cached", "--name-only")


def test_finish_for_another_session_is_ignored(
    git_repo: Path, rendezvous: CommitRendezvous, editor: HeadlessEditor
) -> None:
    git_stage(git_repo, "g.txt", "g\n")
    session = rendezvous.start()
    assert session is not None

    other = type(session)(temp_path=session.temp_path, job=session.job)
    assert rendezvous.finish(other, BufferEvent.WIN_LEAVE.value) is False
    assert rendezvous.session is session

    editor.write(session.buffer, "Still mine")
    assert git_log_subjects(git_repo)[0] == "Still mine"
