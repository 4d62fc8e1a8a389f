"""
Telemetry -- OpenTelemetry transactions and trace id propagation.

Dependencies: opentelemetry-api, opentelemetry-sdk,
opentelemetry-exporter-otlp-proto-grpc.
"""

from .client import Level, Scope, SpanStatus, TelemetryClient, Transaction, init_telemetry
from .trace_id import (
    TRACE_ID_ENV,
    generate_trace_id,
    parse_trace_id,
    resolve_trace_id,
    serialize_trace_id,
)

__all__ = [
    "Level",
    "Scope",
    "SpanStatus",
    "TelemetryClient",
    "Transaction",
    "init_telemetry",
    "TRACE_ID_ENV",
    "generate_trace_id",
    "parse_trace_id",
    "resolve_trace_id",
    "serialize_trace_id",
]
