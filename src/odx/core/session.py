"""
Invocation Session - Transaction lifecycle for one wrapped command.

States:
    UNINITIALIZED -> ACTIVE -> FINISHED    (finish() after the child exits)
    UNINITIALIZED -> ACTIVE -> ABANDONED   (session closed without finish())

Both terminal transitions pass through FINALIZING while the status and
message are reported; a session that fails there is never finalized again.

The transaction of an active session is finalized exactly once: by finish(),
or by close() reporting it as abandoned. Use the session as a context manager
so close() runs on every exit path:

    session = open_session(config, program, args)
    with session:
        status = run_child(program, args, env=session.child_environment())
        session.finish(status)
"""

import os
from collections.abc import Mapping, Sequence
from enum import Enum

import structlog
from opentelemetry.sdk.trace.export import SpanExporter

from ..config.loader import resolve_dsn
from ..config.schema import AppConfig
from ..telemetry.client import Level, Scope, SpanStatus, TelemetryClient, Transaction, init_telemetry
from ..telemetry.trace_id import resolve_trace_id, serialize_trace_id
from .process import ExitStatus, child_environment, command_label
from .signals import InterruptSuppressor

logger = structlog.get_logger()

USERNAME_ENV = "USER"


class SessionState(Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    FINALIZING = "finalizing"
    FINISHED = "finished"
    ABANDONED = "abandoned"


class Outcome(Enum):
    """How the session's transaction was finalized."""

    SUCCESS = "success"
    FAILURE = "failure"
    ABANDONED = "abandoned"


class InvocationSession:
    """Telemetry session around one child process.

    Owns the telemetry client, the transaction and the SIGINT suppressor,
    and releases all three in close().

    Attributes:
        command_label: Transaction name and message subject.
        trace_id: 128-bit trace id, immutable, exported to the child.
        username: User identity attached to the scope, if known.
        state: Current SessionState.
        outcome: Outcome once the session is FINISHED or ABANDONED.
    """

    def __init__(
        self,
        client: TelemetryClient,
        command_label: str,
        trace_id: int,
        username: str | None = None,
    ) -> None:
        self._client = client
        self.command_label = command_label
        self._trace_id = trace_id
        self.username = username
        self.state = SessionState.UNINITIALIZED
        self.outcome: Outcome | None = None
        self.scope = Scope(username=username)
        self._transaction: Transaction | None = None
        self._suppressor: InterruptSuppressor | None = None
        self.log = logger.bind(component="session", command=command_label)

    @property
    def trace_id(self) -> int:
        return self._trace_id

    @property
    def transaction(self) -> Transaction | None:
        return self._transaction

    def start(self) -> None:
        """UNINITIALIZED -> ACTIVE.

        Installs the SIGINT suppressor, then starts the transaction and binds
        it to the scope.

        Raises:
            SignalHandlerError: If the SIGINT handler cannot be installed.
                No transaction is started in that case.
            RuntimeError: If the session was already started.
        """
        if self.state is not SessionState.UNINITIALIZED:
            raise RuntimeError(f"session already {self.state.value}")

        self._suppressor = InterruptSuppressor()

        try:
            transaction = self._client.start_transaction(self.command_label)
        except Exception:
            self._suppressor.restore()
            raise
        if self.username:
            transaction.set_attribute("enduser.id", self.username)
        self._transaction = transaction
        self.scope.transaction = transaction
        self.state = SessionState.ACTIVE

        self.log.info("session.started", trace_id=serialize_trace_id(self._trace_id))

    def child_environment(self, base: Mapping[str, str] | None = None) -> dict[str, str]:
        """Environment for the child, carrying this session's trace id."""
        return child_environment(self._trace_id, base)

    def finish(self, status: ExitStatus) -> Outcome:
        """ACTIVE -> FINISHED: report the child's exit status.

        Success -> OK + info message; anything else (non-zero code or
        signal) -> UNKNOWN_ERROR + warning message. Both messages read
        ``"<command> (<status>)"``.

        Raises:
            RuntimeError: If the session is not active.
        """
        if self.state is not SessionState.ACTIVE:
            raise RuntimeError(f"cannot finish a session that is {self.state.value}")

        message = f"{self.command_label} ({status})"
        if status.success:
            self._finalize(SpanStatus.OK, message, Level.INFO)
            self.outcome = Outcome.SUCCESS
        else:
            self._finalize(SpanStatus.UNKNOWN_ERROR, message, Level.WARNING)
            self.outcome = Outcome.FAILURE
        self.state = SessionState.FINISHED
        return self.outcome

    def abandon(self) -> None:
        """ACTIVE -> ABANDONED. No-op in any other state."""
        if self.state is not SessionState.ACTIVE:
            return
        self._finalize(
            SpanStatus.UNKNOWN_ERROR,
            f"{self.command_label} did not exit",
            Level.ERROR,
        )
        self.outcome = Outcome.ABANDONED
        self.state = SessionState.ABANDONED

    def _finalize(self, status: SpanStatus, message: str, level: Level) -> None:
        self.state = SessionState.FINALIZING
        transaction = self._transaction
        transaction.set_status(status)
        self.scope.capture_message(message, level)
        transaction.finish()

    def close(self) -> None:
        """Release the session: abandon if still active, flush, restore SIGINT."""
        try:
            self.abandon()
        except Exception as e:
            self.log.warning("session.abandon_error", error=str(e))
        self._client.shutdown()
        if self._suppressor is not None:
            self._suppressor.restore()

    def __enter__(self) -> "InvocationSession":
        if self.state is SessionState.UNINITIALIZED:
            self.start()
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"<InvocationSession("
            f"command='{self.command_label}', "
            f"state={self.state.value})>"
        )


def open_session(
    config: AppConfig,
    program: str,
    args: Sequence[str],
    environ: Mapping[str, str] | None = None,
    exporter: SpanExporter | None = None,
) -> InvocationSession:
    """Create and start the session for ``program args...``.

    Args:
        config: Application configuration.
        program: Program to run (as given on the command line).
        args: Arguments passed through to the program.
        environ: Inbound environment (defaults to os.environ).
        exporter: Span exporter override, see TelemetryClient.

    Returns:
        An ACTIVE session. The caller must close it (``with session:``).

    Raises:
        ConfigError: If the sink address is not configured.
        SignalHandlerError: If the SIGINT handler cannot be installed.
    """
    if environ is None:
        environ = os.environ

    dsn = resolve_dsn(config, environ)
    trace_id, inherited = resolve_trace_id(environ)

    client = init_telemetry(config.telemetry, dsn, trace_id, exporter=exporter)
    session = InvocationSession(
        client,
        command_label(program, args),
        trace_id,
        username=environ.get(USERNAME_ENV) or None,
    )
    try:
        session.start()
    except Exception:
        client.shutdown()
        raise

    session.log.debug("session.trace_id", inherited=inherited)
    return session
