"""Test factories and helpers."""

from tests.factories.telemetry import (
    emitted_records,
    failing_app,
    http_scope,
    make_receive,
    metric_points,
    responding_app,
)

__all__ = [
    "emitted_records",
    "failing_app",
    "http_scope",
    "make_receive",
    "metric_points",
    "responding_app",
]
