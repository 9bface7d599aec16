from __future__ import annotations

import json
import sys

import pytest

from gitabra.cli._dispatcher import main


def test_run_reports_split_lines_as_json(capsys: pytest.CaptureFixture[str]) -> None:
    rc = main([
        "run", "--json", "--split-lines", "--",
        sys.executable, "-c", "import sys; print('one'); print('two'); sys.stderr.write('warn\\n')",
    ])
    assert rc == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["output"] == ["one", "two"]
    assert payload["err_output"] == ["warn"]
    assert payload["exit_code"] == 0
    assert payload["elapsed_time"] >= 0


def test_run_propagates_exit_code(capsys: pytest.CaptureFixture[str]) -> None:
    rc = main(["run", "--", sys.executable, "-c", "import sys; print('x', end=''); sys.exit(5)"])
    assert rc == 5
    assert capsys.readouterr().out == "x"


def test_run_merge_output(capsys: pytest.CaptureFixture[str]) -> None:
    rc = main([
        "run", "--json", "--merge-output", "--",
        sys.executable, "-c", "import sys; [sys.stdout.write(c) or sys.stdout.flush() for c in 'abc']",
    ])
    assert rc == 0
    assert json.loads(capsys.readouterr().out)["output"] == ["abc"]


def test_run_timeout(capsys: pytest.CaptureFixture[str]) -> None:
    rc = main(["run", "--timeout", "50", "--", sys.executable, "-c", "import time; time.sleep(30)"])
    assert rc == 124
    assert "did not finish within 50ms" in capsys.readouterr().err


def test_run_missing_program(tmp_path, capsys: pytest.CaptureFixture[str]) -> None:
    rc = main(["run", "--json", "--", str(tmp_path / "nope")])
    assert rc == 127
    err = json.loads(capsys.readouterr().err)
    assert err["error"] == "spawn_failed"


def test_run_without_command_is_usage_error(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["run"]) == 2
    assert "Usage: gitabra run" in capsys.readouterr().err
