"""
odx - Wraps a command with distributed-tracing telemetry.

Runs the wrapped command as a child process inside a telemetry transaction,
forwards the trace id to the child through ODX_TRACE_ID and reports the
child's exit status when it terminates.
"""

__version__ = "0.1.0"
