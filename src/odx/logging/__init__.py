"""
Logging module - Structured logging system.
"""

from .setup import configure_logging, configure_logging_basic, get_logger, level_from_name

__all__ = [
    "configure_logging",
    "configure_logging_basic",
    "get_logger",
    "level_from_name",
]
