"""Observability for Optic itself: structured logging via structlog."""

from optic.observability.logging import (
    PIIRedactor,
    add_trace_context,
    get_logger,
    setup_logging,
)

__all__ = [
    "PIIRedactor",
    "add_trace_context",
    "get_logger",
    "setup_logging",
]
