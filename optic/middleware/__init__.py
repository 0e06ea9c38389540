"""Request middleware."""

from optic.middleware.http_telemetry import (
    DEFAULT_TRANSPARENT_EXCEPTIONS,
    FailureKind,
    HttpTelemetryMiddleware,
    classify_failure,
    derive_severity,
    safe_message,
)

__all__ = [
    "DEFAULT_TRANSPARENT_EXCEPTIONS",
    "FailureKind",
    "HttpTelemetryMiddleware",
    "classify_failure",
    "derive_severity",
    "safe_message",
]
