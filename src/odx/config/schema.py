"""
Pydantic models for odx configuration.

Defines the configuration schemas using Pydantic v2 for validation
and defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

# Sink address variable per mode
SANDBOX_DSN_ENV = "ODX_SANDBOX_DSN"
PRODUCTION_DSN_ENV = "ODX_DSN"


class TelemetryConfig(BaseModel):
    """Telemetry sink configuration.

    The sink address is normally not part of the file: it is read from
    ODX_SANDBOX_DSN or ODX_DSN depending on ``mode``. An explicit ``dsn``
    takes precedence over both.
    """

    mode: Literal["sandbox", "production"] = Field(
        default="production",
        description="Selects which environment variable holds the sink address.",
    )
    dsn: str | None = Field(
        default=None,
        description="Explicit sink address (OTLP endpoint).",
    )
    exporter: Literal["otlp", "console"] = Field(
        default="otlp",
        description="Exporter type: otlp (gRPC to the sink address) or console (stderr).",
    )
    service_name: str = "odx"
    sample_rate: float = Field(default=1.0, ge=0.0, le=1.0)
    export_timeout: float = Field(
        default=2.0,
        gt=0,
        description="Seconds allowed for exporting and flushing spans at exit.",
    )
    op: str = Field(
        default="ui.action",
        description="Category tag attached to every transaction.",
    )

    model_config = {"extra": "forbid"}

    @property
    def dsn_env(self) -> str:
        """Name of the environment variable holding the sink address."""
        return SANDBOX_DSN_ENV if self.mode == "sandbox" else PRODUCTION_DSN_ENV


class LoggingConfig(BaseModel):
    """Logging system configuration."""

    level: Literal["debug", "info", "warn", "error"] = "warn"
    file: Path | None = None

    model_config = {"extra": "forbid"}

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, v: object) -> object:
        """Accept any case, and "warning" as an alias of "warn"."""
        if isinstance(v, str):
            v = v.lower()
            return "warn" if v == "warning" else v
        return v


class AppConfig(BaseModel):
    """Complete application configuration."""

    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"extra": "forbid"}
