"""Job lifecycle: spawn, stream callbacks, stdin, teardown and exit reporting."""
from __future__ import annotations

import os
import shlex
import sys
from pathlib import Path
from typing import Any, List, Optional, Tuple

import pytest

from gitabra.core.exceptions import JobStateError
from gitabra.core.job import (
    SPAWN_FAILED_EXIT_CODE,
    Job,
    JobState,
    merge_env,
    split_returncode,
    wait,
)
from gitabra.core.loop import get_host_loop

from helpers.processes import echo_stdin, emit, kill_pid, orphan_holding_stdout, py, sleep
from helpers.timeouts import JOB_WAIT_MS


class Recorder:
    """Collects every callback a Job makes, in order."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, Any]] = []

    def stdout(self, job: Job, err: Optional[BaseException], data: Optional[bytes]) -> None:
        self.events.append(("stdout", data))

    def stderr(self, job: Job, err: Optional[BaseException], data: Optional[bytes]) -> None:
        self.events.append(("stderr", data))

    def exit(self, job: Job, code: int, signal: int) -> None:
        self.events.append(("exit", (code, signal)))

    def data(self, name: str) -> bytes:
        return b"".join(d for n, d in self.events if n == name and d is not None)

    def job(self, cmd: Any, opt: Optional[dict] = None) -> Job:
        return Job(cmd, opt, on_stdout=self.stdout, on_stderr=self.stderr, on_exit=self.exit)


def test_job_reports_exit_code_and_output() -> None:
    rec = Recorder()
    job = rec.job(emit(stdout="out", stderr="err", exit_code=3))

    assert job.state is JobState.CREATED
    job.start()
    assert wait(job, JOB_WAIT_MS)

    assert job.done
    assert job.exit_code == 3
    assert job.signal == 0
    assert rec.data("stdout") == b"out"
    assert rec.data("stderr") == b"err"
    assert [e for e in rec.events if e[0] == "exit"] == [("exit", (3, 0))]


def test_output_written_before_exit_is_delivered_once_per_stream() -> None:
    rec = Recorder()
    job = rec.job(emit(stdout="a" * 10000, stderr="b" * 10000))
    job.start()
    assert wait(job, JOB_WAIT_MS)

    assert rec.data("stdout") == b"a" * 10000
    assert rec.data("stderr") == b"b" * 10000
    assert rec.events.count(("stdout", None)) == 1
    assert rec.events.count(("stderr", None)) == 1
    assert [e for e in rec.events if e[0] == "exit"] == [("exit", (0, 0))]


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX pipe inheritance")
def test_exit_is_reported_while_grandchild_holds_stdout() -> None:
    rec = Recorder()
    job = rec.job(orphan_holding_stdout(seconds=30))
    job.start()
    try:
        assert wait(job, JOB_WAIT_MS)
        assert job.exit_code == 0
        assert rec.data("stdout").strip().isdigit()
    finally:
        pid = rec.data("stdout").strip()
        if pid.isdigit():
            kill_pid(int(pid))


def test_start_moves_job_to_running_and_exposes_pid() -> None:
    job = Job(sleep(0.2), on_exit=lambda *_: None)
    job.start()

    assert job.state is JobState.RUNNING
    assert isinstance(job.pid, int)
    assert wait(job, JOB_WAIT_MS)
    assert job.state is JobState.TERMINATED


def test_start_from_inside_the_loop_schedules_the_spawn() -> None:
    rec = Recorder()
    job = rec.job(emit(stdout="scheduled"))
    get_host_loop().call_soon(job.start)

    assert wait(job, JOB_WAIT_MS)
    assert job._spawn_task is not None
    assert job._spawn_task.done()
    assert job.exit_code == 0
    assert rec.data("stdout") == b"scheduled"


def test_start_twice_raises() -> None:
    job = Job(emit())
    job.start()
    with pytest.raises(JobStateError):
        job.start()
    wait(job, JOB_WAIT_MS)


def test_streams_without_callback_are_not_piped() -> None:
    job = Job(emit(stdout="ignored"), on_exit=lambda *_: None)
    job.start()

    assert job.stdout is None
    assert job.stderr is None
    assert job.stdin is not None
    assert wait(job, JOB_WAIT_MS)
    assert job.exit_code == 0


def test_spawn_failure_is_reported_through_on_exit(tmp_path: Path) -> None:
    rec = Recorder()
    job = rec.job([str(tmp_path / "no-such-program")])

    job.start()  # must not raise
    assert wait(job, JOB_WAIT_MS)

    assert job.exit_code == SPAWN_FAILED_EXIT_CODE
    assert isinstance(job.spawn_error, OSError)
    assert rec.events == [("exit", (SPAWN_FAILED_EXIT_CODE, 0))]


def test_send_writes_stdin_and_closes_it() -> None:
    rec = Recorder()
    job = rec.job(echo_stdin())
    job.start()

    job.send("hello\nworld")
    assert wait(job, JOB_WAIT_MS)
    assert rec.data("stdout") == b"hello\nworld"


def test_send_before_start_raises() -> None:
    job = Job(echo_stdin())
    with pytest.raises(JobStateError):
        job.send("data")


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
def test_stop_kills_running_process_and_reports_signal() -> None:
    rec = Recorder()
    job = rec.job(sleep(30))
    job.start()

    job.stop()
    assert wait(job, JOB_WAIT_MS)

    code, signal = job.exit_code, job.signal
    assert signal > 0
    assert code == 128 + signal


def test_stop_is_idempotent() -> None:
    job = Job(emit(), on_exit=lambda *_: None)
    job.start()
    assert wait(job, JOB_WAIT_MS)
    job.stop()
    job.stop()
    assert job.done


def test_string_command_is_split_with_shell_rules() -> None:
    cmd = f"{shlex.quote(sys.executable)} -c 'print(\"a b\")'"
    opts = Job(cmd).options()
    assert opts.command == sys.executable
    assert opts.args == ["-c", 'print("a b")']


def test_options_drop_wrapper_keys_and_keep_spawn_keys(tmp_path: Path) -> None:
    opts = Job(
        emit(),
        {"split_lines": True, "merge_output": True, "encoding": None, "cwd": tmp_path, "start_new_session": True},
    ).options()
    assert opts.cwd == str(tmp_path)
    assert opts.extra == {"start_new_session": True}
    assert opts.env is None


def test_cwd_option_sets_working_directory(tmp_path: Path) -> None:
    rec = Recorder()
    job = rec.job(py("import os; print(os.getcwd())"), {"cwd": tmp_path})
    job.start()
    assert wait(job, JOB_WAIT_MS)
    assert Path(rec.data("stdout").decode().strip()).resolve() == tmp_path.resolve()


def test_env_option_is_merged_over_inherited_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITABRA_INHERITED", "kept")
    rec = Recorder()
    job = rec.job(
        py("import os; print(os.environ['GITABRA_INHERITED'], os.environ['GITABRA_ADDED'])"),
        {"env": {"GITABRA_ADDED": "new"}},
    )
    job.start()
    assert wait(job, JOB_WAIT_MS)
    assert rec.data("stdout").split() == [b"kept", b"new"]


class TestMergeEnv:
    def test_none_means_inherit(self) -> None:
        assert merge_env(None) is None
        assert merge_env({}) is None

    def test_mapping_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GITABRA_X", "old")
        env = merge_env({"GITABRA_X": "new", "GITABRA_Y": 1})
        assert env is not None
        assert env["GITABRA_X"] == "new"
        assert env["GITABRA_Y"] == "1"
        assert env["PATH"] == os.environ["PATH"]

    def test_name_value_list(self) -> None:
        env = merge_env(["GITABRA_A=1", "GITABRA_B=x=y"])
        assert env is not None
        assert env["GITABRA_A"] == "1"
        assert env["GITABRA_B"] == "x=y"

    def test_malformed_entry_raises(self) -> None:
        with pytest.raises(ValueError):
            merge_env(["NOVALUE"])


@pytest.mark.parametrize(
    "returncode, expected",
    [(0, (0, 0)), (7, (7, 0)), (-9, (137, 9)), (-15, (143, 15))],
)
def test_split_returncode(returncode: int, expected: Tuple[int, int]) -> None:
    assert split_returncode(returncode) == expected
