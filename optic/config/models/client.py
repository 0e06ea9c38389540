"""Telemetry client configuration."""

import os

from pydantic import BaseModel, Field

DEFAULT_ENDPOINT = "http://localhost:4317"


def _env(*names: str) -> str | None:
    """Return the first non-blank environment variable among ``names``."""
    for name in names:
        value = os.environ.get(name)
        if value and value.strip():
            return value
    return None


class OpticConfig(BaseModel):
    """Configuration of the Optic telemetry client.

    Resolved once at startup and treated as read-only afterwards; the
    per-signal flags are read by the HTTP middleware at construction.
    """

    api_key: str | None = Field(default=None, description="API key sent to the collector")
    service_name: str = Field(default="", description="Service name reported on telemetry")
    endpoint: str = Field(default=DEFAULT_ENDPOINT, description="OTLP collector endpoint")
    environment: str = Field(default="", description="Deployment environment")
    service_version: str = Field(default="", description="Service version")
    enable_traces: bool = Field(default=True, description="Enable tracing")
    enable_metrics: bool = Field(default=True, description="Enable metrics")
    enable_logs: bool = Field(default=True, description="Enable log records")
    export_interval_ms: int = Field(
        default=60000,
        gt=0,
        description="Metric export interval in milliseconds",
    )
    prometheus_enabled: bool = Field(
        default=False,
        description="Also expose metrics through a Prometheus reader",
    )

    @classmethod
    def from_env(cls) -> "OpticConfig":
        """Build a configuration from OPTIC_* environment variables.

        Standard OTEL_* variables are used as fallbacks for the service
        name and the collector endpoint.
        """
        values: dict[str, str] = {}
        resolved = {
            "api_key": _env("OPTIC_API_KEY"),
            "service_name": _env("OPTIC_SERVICE_NAME", "OTEL_SERVICE_NAME"),
            "endpoint": _env("OPTIC_ENDPOINT", "OTEL_EXPORTER_OTLP_ENDPOINT"),
            "environment": _env("OPTIC_ENVIRONMENT"),
            "service_version": _env("OPTIC_SERVICE_VERSION"),
        }
        for key, value in resolved.items():
            if value is not None:
                values[key] = value
        return cls(**values)
