"""
Trace id propagation across process boundaries.

The trace id travels between processes in a single environment variable,
ODX_TRACE_ID, as 32 lowercase hex digits. A wrapper reuses the inbound id
when it is valid and always exports its own id to the child.
"""

import os
from collections.abc import Mapping

from opentelemetry.sdk.trace.id_generator import IdGenerator, RandomIdGenerator
from opentelemetry.trace import INVALID_TRACE_ID, format_trace_id

TRACE_ID_ENV = "ODX_TRACE_ID"

_MAX_TRACE_ID = (1 << 128) - 1
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def parse_trace_id(value: str | None) -> int | None:
    """Parse a 128-bit trace id.

    Accepts exactly 32 hex digits, case-insensitive, surrounding whitespace
    ignored. The all-zero id is invalid.

    Returns:
        The trace id, or None if ``value`` is absent or malformed.
    """
    if not value:
        return None
    value = value.strip()
    if len(value) != 32 or not _HEX_DIGITS.issuperset(value):
        return None
    trace_id = int(value, 16)
    if trace_id == INVALID_TRACE_ID:
        return None
    return trace_id


def serialize_trace_id(trace_id: int) -> str:
    """Render a trace id in its environment-variable form."""
    if not INVALID_TRACE_ID < trace_id <= _MAX_TRACE_ID:
        raise ValueError(f"not a valid 128-bit trace id: {trace_id!r}")
    return format_trace_id(trace_id)


def generate_trace_id() -> int:
    """Generate a fresh random trace id."""
    return RandomIdGenerator().generate_trace_id()


def resolve_trace_id(environ: Mapping[str, str] | None = None) -> tuple[int, bool]:
    """Resolve the session trace id from the inbound environment.

    Returns:
        (trace_id, inherited) where ``inherited`` is True when the id came
        from ODX_TRACE_ID.
    """
    if environ is None:
        environ = os.environ
    inbound = parse_trace_id(environ.get(TRACE_ID_ENV))
    if inbound is not None:
        return inbound, True
    return generate_trace_id(), False


class FixedTraceIdGenerator(IdGenerator):
    """Id generator that puts every span of the provider in one trace.

    Root spans get ``trace_id`` instead of a random one, so the wrapper's
    transaction joins the parent wrapper's trace without a fake remote parent.
    """

    def __init__(self, trace_id: int) -> None:
        self._trace_id = trace_id
        self._random = RandomIdGenerator()

    def generate_span_id(self) -> int:
        return self._random.generate_span_id()

    def generate_trace_id(self) -> int:
        return self._trace_id
