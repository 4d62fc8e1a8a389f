"""Shared fixtures for the odx test suite."""

import logging

import pytest
import structlog
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from odx.config.schema import AppConfig

ODX_VARS = (
    "ODX_DSN",
    "ODX_SANDBOX_DSN",
    "ODX_TRACE_ID",
    "ODX_MODE",
    "ODX_EXPORTER",
    "ODX_LOG_LEVEL",
    "ODX_LOG_FILE",
    "ODX_CONFIG",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Start every test without any inherited ODX_* variable."""
    for name in ODX_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers bound to streams of previous tests."""
    yield
    logging.root.handlers.clear()
    structlog.reset_defaults()


@pytest.fixture
def exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def config() -> AppConfig:
    return AppConfig()
