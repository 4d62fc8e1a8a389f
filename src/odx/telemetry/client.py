"""
OpenTelemetry client - explicitly owned telemetry handle for one session.

TelemetryClient owns a private TracerProvider. The global provider is never
set: whoever calls init_telemetry() owns the handle and must call shutdown()
to flush pending spans.

Vocabulary:
- Transaction: the root span of one wrapped invocation, with a status
  (ok / unknown_error) and attached messages.
- Scope: the current transaction plus the user identity; messages captured
  through the scope are attributed to both.

Exporters supported:
- otlp: OpenTelemetry Protocol (gRPC) to the sink address
- console: prints spans to stderr (debugging)
"""

import sys
from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog
from opentelemetry.context import Context
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanExporter,
)
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.trace import Status, StatusCode

from .. import __version__
from ..config.schema import TelemetryConfig
from .trace_id import FixedTraceIdGenerator

logger = structlog.get_logger()

__all__ = [
    "Level",
    "Scope",
    "SpanStatus",
    "TelemetryClient",
    "Transaction",
    "init_telemetry",
]

ENDUSER_ATTRIBUTE = "enduser.id"


class SpanStatus(Enum):
    """Terminal status of a transaction."""

    OK = "ok"
    UNKNOWN_ERROR = "unknown_error"


class Level(Enum):
    """Severity of a captured message."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Transaction:
    """A named, timed unit of telemetry work backed by a root span.

    finish() ends the span and may be called only once.
    """

    def __init__(self, span: Any, name: str, op: str) -> None:
        self._span = span
        self.name = name
        self.op = op
        self.status: SpanStatus | None = None
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def trace_id(self) -> int:
        return self._span.get_span_context().trace_id

    def set_status(self, status: SpanStatus) -> None:
        self.status = status
        self._span.set_attribute("odx.status", status.value)
        if status is SpanStatus.OK:
            self._span.set_status(Status(StatusCode.OK))
        else:
            self._span.set_status(Status(StatusCode.ERROR, status.value))

    def set_attribute(self, key: str, value: Any) -> None:
        self._span.set_attribute(key, value)

    def add_event(self, name: str, attributes: dict[str, Any]) -> None:
        self._span.add_event(name, attributes=attributes)

    def finish(self) -> None:
        if self._finished:
            raise RuntimeError(f"transaction {self.name!r} already finished")
        self._finished = True
        self._span.end()


@dataclass
class Scope:
    """Ambient context applied to captured messages."""

    transaction: Transaction | None = None
    username: str | None = None

    def capture_message(self, message: str, level: Level) -> None:
        """Record a message on the current transaction and log it.

        The message becomes a ``message`` span event carrying the level and
        the user identity, and is mirrored to the structlog logger at the
        same level.
        """
        attributes: dict[str, Any] = {"message": message, "level": level.value}
        if self.username:
            attributes[ENDUSER_ATTRIBUTE] = self.username

        if self.transaction is not None and not self.transaction.finished:
            self.transaction.add_event("message", attributes)

        log = logger.bind(component="telemetry")
        getattr(log, level.value)("telemetry.message", message=message)


class TelemetryClient:
    """Owned telemetry handle: tracer provider, exporter and tracer.

    Every span started through this client belongs to ``trace_id``.

    Attributes:
        dsn: Sink address the exporter sends to.
        trace_id: Trace id shared by all transactions of this client.
    """

    def __init__(
        self,
        config: TelemetryConfig,
        dsn: str,
        trace_id: int,
        exporter: SpanExporter | None = None,
    ) -> None:
        """Build the provider and exporter.

        Args:
            config: Telemetry configuration.
            dsn: Sink address (OTLP endpoint).
            trace_id: Trace id pinned on every root span.
            exporter: Explicit exporter, exported synchronously. Overrides
                config.exporter; used to capture spans in memory.
        """
        self.config = config
        self.dsn = dsn
        self.trace_id = trace_id
        self.log = logger.bind(component="telemetry")
        self._closed = False

        resource = Resource.create({
            "service.name": config.service_name,
            "service.version": __version__,
        })
        self._provider = TracerProvider(
            resource=resource,
            sampler=ParentBased(root=TraceIdRatioBased(config.sample_rate)),
            id_generator=FixedTraceIdGenerator(trace_id),
        )

        if exporter is not None:
            self._provider.add_span_processor(SimpleSpanProcessor(exporter))
        else:
            match config.exporter:
                case "otlp":
                    self._setup_otlp(dsn)
                case "console":
                    self._setup_console()

        self._tracer = self._provider.get_tracer(config.service_name, __version__)

        self.log.debug(
            "telemetry.initialized",
            exporter=config.exporter if exporter is None else type(exporter).__name__,
            endpoint=dsn,
        )

    def _setup_otlp(self, endpoint: str) -> None:
        """Configure the OTLP gRPC exporter."""
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
            OTLPSpanExporter,
        )

        self._provider.add_span_processor(
            BatchSpanProcessor(
                OTLPSpanExporter(endpoint=endpoint, timeout=self.config.export_timeout)
            )
        )

    def _setup_console(self) -> None:
        """Configure the console exporter (stderr; stdout belongs to the child)."""
        self._provider.add_span_processor(
            SimpleSpanProcessor(ConsoleSpanExporter(out=sys.stderr))
        )

    def start_transaction(self, name: str, op: str | None = None) -> Transaction:
        """Start a transaction (root span) named ``name``.

        Args:
            name: Transaction name.
            op: Category tag. Defaults to config.op.
        """
        op = op or self.config.op
        # Always a root span, so the pinned trace id applies
        span = self._tracer.start_span(
            name, context=Context(), attributes={"odx.op": op}
        )
        return Transaction(span, name, op)

    def shutdown(self) -> None:
        """Flush pending spans and stop the provider. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        try:
            # Flush within export_timeout, then stop
            self._provider.force_flush(
                timeout_millis=int(self.config.export_timeout * 1000)
            )
            self._provider.shutdown()
        except Exception as e:
            self.log.warning("telemetry.shutdown_error", error=str(e))


def init_telemetry(
    config: TelemetryConfig,
    dsn: str,
    trace_id: int,
    exporter: SpanExporter | None = None,
) -> TelemetryClient:
    """Factory for the session telemetry client."""
    return TelemetryClient(config, dsn, trace_id, exporter=exporter)
