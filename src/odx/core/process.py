"""
Child process execution.

The child inherits stdin/stdout/stderr and the wrapper's environment plus
ODX_TRACE_ID. Its status is captured exactly once, as an ExitStatus, and that
single value drives both the telemetry report and the wrapper's exit code.
"""

import os
import signal
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

import structlog

from ..telemetry.trace_id import TRACE_ID_ENV, serialize_trace_id

logger = structlog.get_logger()

# POSIX shell convention for a child killed by signal N
SIGNAL_EXIT_BASE = 128


def basename(path: str) -> str:
    """Return the part of ``path`` after the last separator.

    Unlike Path.name, a trailing separator yields an empty string, and a
    path without separators is returned unchanged.
    """
    return os.path.basename(path)


def command_label(program: str, args: Sequence[str]) -> str:
    """Human-readable rendering of an invocation: ``basename(program) args...``."""
    return " ".join([basename(program), *args])


@dataclass(frozen=True)
class ExitStatus:
    """Termination status of the child: an exit code or a signal number."""

    code: int | None = None
    signal: int | None = None

    @classmethod
    def from_returncode(cls, returncode: int) -> "ExitStatus":
        """Build from a Popen returncode (negative means killed by signal)."""
        if returncode < 0:
            return cls(signal=-returncode)
        return cls(code=returncode)

    @property
    def success(self) -> bool:
        return self.code == 0

    @property
    def exit_code(self) -> int:
        """Exit code for the wrapper: the child's code, or 128 + signal."""
        if self.code is not None:
            return self.code
        if self.signal is not None:
            return SIGNAL_EXIT_BASE + self.signal
        return 1

    def __str__(self) -> str:
        if self.code is not None:
            return f"exit status: {self.code}"
        if self.signal is not None:
            try:
                name = signal.Signals(self.signal).name
            except ValueError:
                return f"signal: {self.signal}"
            return f"signal: {self.signal} ({name})"
        return "unknown status"


def child_environment(
    trace_id: int,
    base: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Environment for the child: ``base`` (default os.environ) + ODX_TRACE_ID."""
    env = dict(os.environ if base is None else base)
    env[TRACE_ID_ENV] = serialize_trace_id(trace_id)
    return env


def run_child(
    program: str,
    args: Sequence[str],
    env: Mapping[str, str] | None = None,
) -> ExitStatus:
    """Spawn ``program`` with ``args`` and block until it terminates.

    Standard streams are inherited, never captured.

    Raises:
        OSError: If the program cannot be spawned (not found, not executable).
    """
    argv = [program, *args]
    logger.debug("child.spawn", argv=argv)
    completed = subprocess.run(argv, env=env, check=False)
    status = ExitStatus.from_returncode(completed.returncode)
    logger.debug("child.exited", status=str(status))
    return status
