"""
Configuration module for odx.

Exports the main components for convenient imports.
"""

from .loader import load_config, resolve_dsn
from .schema import (
    PRODUCTION_DSN_ENV,
    SANDBOX_DSN_ENV,
    AppConfig,
    LoggingConfig,
    TelemetryConfig,
)

__all__ = [
    "load_config",
    "resolve_dsn",
    "AppConfig",
    "LoggingConfig",
    "TelemetryConfig",
    "PRODUCTION_DSN_ENV",
    "SANDBOX_DSN_ENV",
]
