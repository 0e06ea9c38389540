"""Structured logging for Optic's own diagnostics.

Optic logs its wiring decisions, startup and shutdown through structlog.
Request log records are a separate signal, emitted through the
OpenTelemetry logger of the telemetry client.

Secrets end up in these events easily (the client logs its
configuration), so redaction is on by default.
"""

import logging
import re
import sys
from collections.abc import Mapping
from typing import Any, cast

import structlog
from opentelemetry import trace
from structlog.types import EventDict, Processor, WrappedLogger

REDACTED = "[REDACTED]"

# Keys whose values are always dropped, compared lowercased
SENSITIVE_KEYS: frozenset[str] = frozenset({
    "access_token",
    "api_key",
    "apikey",
    "auth",
    "authorization",
    "bearer",
    "credential",
    "credentials",
    "email",
    "password",
    "private_key",
    "refresh_token",
    "secret",
    "token",
    "x-api-key",
})

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
BEARER_PATTERN = re.compile(r"(?i)bearer\s+[a-z0-9._~+/=-]+")


class PIIRedactor:
    """structlog processor masking secrets and PII.

    Values under a sensitive key are replaced outright. Other strings,
    including strings nested in dicts and lists, are scanned for email
    addresses and bearer tokens.
    """

    def __call__(
        self,
        _logger: WrappedLogger,
        _method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        return cast(EventDict, self._redact_mapping(event_dict))

    def _redact_mapping(self, data: Mapping[str, Any]) -> dict[str, Any]:
        return {
            key: REDACTED if key.lower() in SENSITIVE_KEYS else self._redact_value(value)
            for key, value in data.items()
        }

    def _redact_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return BEARER_PATTERN.sub("[BEARER]", EMAIL_PATTERN.sub("[EMAIL]", value))
        if isinstance(value, Mapping):
            return self._redact_mapping(value)
        if isinstance(value, list):
            return [self._redact_value(item) for item in value]
        return value


def add_trace_context(
    _logger: WrappedLogger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Attach the ids of the current span, if there is a valid one."""
    span_context = trace.get_current_span().get_span_context()
    if span_context.is_valid:
        event_dict.setdefault("trace_id", format(span_context.trace_id, "032x"))
        event_dict.setdefault("span_id", format(span_context.span_id, "016x"))
    return event_dict


def setup_logging(
    level: str = "INFO",
    format: str = "json",
    redact_pii: bool = True,
    include_trace_id: bool = True,
) -> None:
    """Configure structlog for Optic.

    Args:
        level: Minimum log level name; unknown names fall back to INFO
        format: "json" for production, "console" for development
        redact_pii: Mask secrets and PII in events
        include_trace_id: Add trace_id/span_id of the current span
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if include_trace_id:
        processors.append(add_trace_context)
    if redact_pii:
        processors.append(PIIRedactor())
    processors.append(
        structlog.processors.JSONRenderer()
        if format == "json"
        else structlog.dev.ConsoleRenderer(colors=True)
    )

    level_number = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_number),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Logger for ``name`` (typically the module's ``__name__``)."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
