"""
Tests for child process helpers.

Covers:
- basename / command_label
- ExitStatus (classification, rendering, wrapper exit code)
- child_environment
- run_child (real subprocesses via the current interpreter)
"""

import os
import signal
import sys

import pytest

from odx.core.process import (
    ExitStatus,
    basename,
    child_environment,
    command_label,
    run_child,
)
from odx.telemetry.trace_id import TRACE_ID_ENV

TRACE_ID = 0x4BF92F3577B34DA6A3CE929D0E0E4736


# -- Tests: basename / command_label ------------------------------------------


class TestBasename:
    """Tests for basename."""

    @pytest.mark.parametrize(
        "path, expected",
        [
            ("/usr/bin/ls", "ls"),
            ("./scripts/build.sh", "build.sh"),
            ("bin/", ""),
            ("/", ""),
        ],
    )
    def test_substring_after_last_separator(self, path, expected):
        assert basename(path) == expected

    @pytest.mark.parametrize("path", ["ls", "cargo", "my tool", ""])
    def test_no_separator_unchanged(self, path):
        assert basename(path) == path


class TestCommandLabel:
    """Tests for command_label."""

    def test_program_and_args(self):
        assert command_label("/usr/bin/git", ["commit", "-m", "msg"]) == "git commit -m msg"

    def test_no_args(self):
        assert command_label("/bin/false", []) == "false"

    def test_args_kept_verbatim(self):
        assert command_label("echo", ("hello", "--help")) == "echo hello --help"


# -- Tests: ExitStatus -------------------------------------------------------


class TestExitStatus:
    """Tests for ExitStatus."""

    def test_success(self):
        status = ExitStatus.from_returncode(0)
        assert status.success
        assert status.exit_code == 0
        assert str(status) == "exit status: 0"

    def test_failure_code(self):
        status = ExitStatus.from_returncode(1)
        assert not status.success
        assert status.exit_code == 1
        assert str(status) == "exit status: 1"

    def test_signal(self):
        status = ExitStatus.from_returncode(-signal.SIGKILL)
        assert not status.success
        assert status.code is None
        assert status.signal == signal.SIGKILL
        assert status.exit_code == 128 + signal.SIGKILL
        assert str(status) == f"signal: {int(signal.SIGKILL)} (SIGKILL)"

    def test_unknown_signal_number(self):
        status = ExitStatus(signal=250)
        assert str(status) == "signal: 250"

    def test_empty_status_is_failure(self):
        status = ExitStatus()
        assert not status.success
        assert status.exit_code == 1


# -- Tests: child_environment ------------------------------------------------


class TestChildEnvironment:
    """Tests for child_environment."""

    def test_adds_trace_id(self):
        env = child_environment(TRACE_ID, {"PATH": "/bin"})
        assert env == {"PATH": "/bin", TRACE_ID_ENV: "4bf92f3577b34da6a3ce929d0e0e4736"}

    def test_overrides_inbound_trace_id(self):
        env = child_environment(TRACE_ID, {TRACE_ID_ENV: "stale"})
        assert env[TRACE_ID_ENV] == "4bf92f3577b34da6a3ce929d0e0e4736"

    def test_does_not_mutate_base(self):
        base = {"A": "1"}
        child_environment(TRACE_ID, base)
        assert base == {"A": "1"}

    def test_defaults_to_process_environment(self, monkeypatch):
        monkeypatch.setenv("ODX_TEST_MARKER", "yes")
        env = child_environment(TRACE_ID)
        assert env["ODX_TEST_MARKER"] == "yes"
        assert TRACE_ID_ENV not in os.environ


# -- Tests: run_child --------------------------------------------------------


class TestRunChild:
    """Tests for run_child."""

    def test_exit_code(self):
        status = run_child(sys.executable, ["-c", "raise SystemExit(7)"])
        assert status == ExitStatus(code=7)

    def test_success(self):
        assert run_child(sys.executable, ["-c", "pass"]).success

    def test_environment_reaches_child(self, tmp_path):
        out = tmp_path / "trace"
        env = child_environment(TRACE_ID)
        code = f"import os, pathlib; pathlib.Path({str(out)!r}).write_text(os.environ[{TRACE_ID_ENV!r}])"
        status = run_child(sys.executable, ["-c", code], env=env)
        assert status.success
        assert out.read_text() == "4bf92f3577b34da6a3ce929d0e0e4736"

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
    def test_killed_by_signal(self):
        code = "import os, signal; os.kill(os.getpid(), signal.SIGTERM)"
        status = run_child(sys.executable, ["-c", code])
        assert status.signal == signal.SIGTERM
        assert status.exit_code == 128 + signal.SIGTERM

    def test_missing_program_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            run_child(str(tmp_path / "does-not-exist"), [])
