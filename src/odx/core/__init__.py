"""
Core of odx: invocation session lifecycle and child process execution.
"""

from .process import ExitStatus, basename, child_environment, command_label, run_child
from .session import InvocationSession, Outcome, SessionState, open_session
from .signals import InterruptSuppressor

__all__ = [
    "ExitStatus",
    "InterruptSuppressor",
    "InvocationSession",
    "Outcome",
    "SessionState",
    "basename",
    "child_environment",
    "command_label",
    "open_session",
    "run_child",
]
