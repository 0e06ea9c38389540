"""Optic: HTTP request telemetry for Starlette and FastAPI applications.

Records a server span, request metrics and request log records for every
inbound HTTP request through OpenTelemetry, and wires itself into an
application with a single call:

    from optic import configure_optic

    configure_optic(app)
"""

from optic.bootstrap import OpticComponents, configure_optic
from optic.client import Optic
from optic.config.models import OpticConfig, OpticProperties
from optic.errors import ConfigurationError, OpticError, RequestProcessingError
from optic.metrics import MeterRegistry
from optic.middleware import HttpTelemetryMiddleware

__all__ = [
    "ConfigurationError",
    "HttpTelemetryMiddleware",
    "MeterRegistry",
    "Optic",
    "OpticComponents",
    "OpticConfig",
    "OpticError",
    "OpticProperties",
    "RequestProcessingError",
    "configure_optic",
]
