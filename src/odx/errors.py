"""
Exceptions raised by odx.

Any OdxError raised while opening a session is non-fatal: the wrapped
command still runs, just without telemetry.
"""


class OdxError(Exception):
    """Base error for odx."""


class ConfigError(OdxError):
    """Configuration could not be resolved (e.g. the sink address is unset)."""


class SignalHandlerError(OdxError):
    """The SIGINT handler could not be installed."""
