"""Integration properties read from the ``[optic]`` configuration table.

These are the knobs an embedding application sets to wire Optic into
its startup. Blank text properties mean "not set" and leave the value
resolved from the OPTIC_* environment in place.
"""

from pydantic import BaseModel, Field


class PrometheusConfig(BaseModel):
    """Prometheus scrape endpoint configuration."""

    enabled: bool = Field(default=False, description="Expose a Prometheus scrape endpoint")
    path: str = Field(default="/metrics", description="Mount path of the scrape endpoint")


class OpticProperties(BaseModel):
    """Optic integration properties."""

    enabled: bool = Field(default=True, description="Master switch for the whole integration")
    api_key: str | None = Field(default=None, description="API key sent to the collector")
    service_name: str | None = Field(default=None, description="Service name reported on telemetry")
    endpoint: str | None = Field(default=None, description="OTLP collector endpoint")
    environment: str | None = Field(default=None, description="Deployment environment")
    service_version: str | None = Field(default=None, description="Service version")
    enable_traces: bool = Field(default=True, description="Record a span per request")
    enable_metrics: bool = Field(default=True, description="Record request count and duration")
    enable_logs: bool = Field(default=True, description="Emit request log records")
    export_interval_ms: int = Field(
        default=60000,
        gt=0,
        description="Metric export interval in milliseconds",
    )
    prometheus: PrometheusConfig = Field(
        default_factory=PrometheusConfig,
        description="Prometheus scrape endpoint",
    )
