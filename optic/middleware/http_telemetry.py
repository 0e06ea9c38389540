"""HTTP telemetry middleware.

Wraps every inbound HTTP request in a server span, emits a start and a
completion log record, and records request count and duration. The
per-signal switches come from the telemetry client configuration and are
read once, when the middleware is constructed.

Non-HTTP scopes (websocket, lifespan) pass straight through.
"""

import time
from collections.abc import Iterable
from contextlib import AbstractContextManager, nullcontext
from enum import Enum
from typing import Any

from opentelemetry import trace
from opentelemetry._logs import LogRecord, SeverityNumber
from opentelemetry.propagate import extract
from opentelemetry.trace import Span, SpanKind, Status, StatusCode
from starlette.exceptions import HTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from optic.client import Optic
from optic.errors import RequestProcessingError
from optic.observability.logging import get_logger

logger = get_logger(__name__)

INSTRUMENTATION_NAME = "optic-http"

REQUEST_COUNT_NAME = "http.server.request.count"
REQUEST_DURATION_NAME = "http.server.request.duration"

# Requests at or above this duration are logged at WARN
SLOW_REQUEST_MS = 1000.0

# Status reported when the app never started a response
UNSTARTED_RESPONSE_STATUS = 500

DEFAULT_TRANSPARENT_EXCEPTIONS: tuple[type[BaseException], ...] = (
    OSError,
    HTTPException,
    RequestProcessingError,
)

_SEVERITY_TEXT = {
    SeverityNumber.DEBUG: "DEBUG",
    SeverityNumber.INFO: "INFO",
    SeverityNumber.WARN: "WARN",
    SeverityNumber.ERROR: "ERROR",
}


class FailureKind(str, Enum):
    """How a downstream failure is propagated."""

    TRANSPARENT = "transparent"
    WRAPPED = "wrapped"


def classify_failure(
    exc: BaseException,
    transparent: tuple[type[BaseException], ...] = DEFAULT_TRANSPARENT_EXCEPTIONS,
) -> FailureKind:
    """Decide whether a downstream failure is re-raised as is or wrapped.

    Anything that is not an ``Exception`` (cancellation, interpreter
    exit) is always transparent.
    """
    if not isinstance(exc, Exception) or isinstance(exc, transparent):
        return FailureKind.TRANSPARENT
    return FailureKind.WRAPPED


def safe_message(exc: BaseException) -> str:
    """Exception message, or the exception class name when it has none."""
    message = str(exc)
    return message if message else type(exc).__name__


def derive_severity(status_code: int, duration_ms: float, failed: bool) -> SeverityNumber:
    """Severity of the completion record.

    ERROR for server errors and failures, WARN for client errors and
    slow requests, INFO otherwise.
    """
    if status_code >= 500 or failed:
        return SeverityNumber.ERROR
    if status_code >= 400 or duration_ms >= SLOW_REQUEST_MS:
        return SeverityNumber.WARN
    return SeverityNumber.INFO


def _carrier(scope: Scope) -> dict[str, str]:
    return {
        key.decode("latin-1"): value.decode("latin-1")
        for key, value in scope.get("headers") or []
    }


class HttpTelemetryMiddleware:
    """ASGI middleware recording traces, metrics and logs per HTTP request.

    Example:
        app = FastAPI()
        app.add_middleware(HttpTelemetryMiddleware, client=optic)

    Downstream failures are always re-raised. Failures whose type is in
    ``transparent_exceptions`` propagate unchanged; any other
    ``Exception`` is wrapped in RequestProcessingError.
    """

    def __init__(
        self,
        app: ASGIApp,
        client: Optic,
        transparent_exceptions: Iterable[type[BaseException]] = DEFAULT_TRANSPARENT_EXCEPTIONS,
        instrumentation_name: str = INSTRUMENTATION_NAME,
    ) -> None:
        self.app = app
        self.transparent_exceptions = tuple(transparent_exceptions)

        config = client.config
        self.traces_enabled = config.enable_traces
        self.metrics_enabled = config.enable_metrics
        self.logs_enabled = config.enable_logs

        self._tracer = client.tracer(instrumentation_name) if self.traces_enabled else None
        self._logger = client.logger(instrumentation_name) if self.logs_enabled else None

        self._request_counter = None
        self._request_duration = None
        if self.metrics_enabled:
            meter = client.meter(instrumentation_name)
            self._request_counter = meter.create_counter(
                REQUEST_COUNT_NAME,
                unit="1",
                description="Total inbound HTTP requests",
            )
            self._request_duration = meter.create_histogram(
                REQUEST_DURATION_NAME,
                unit="ms",
                description="Inbound HTTP request duration",
            )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "")
        route = scope.get("path", "")

        span = self._start_span(scope, method, route)
        status_code: int | None = None
        failed: BaseException | None = None

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        with self._activate(span):
            if self.logs_enabled:
                self._emit(
                    SeverityNumber.DEBUG,
                    f"HTTP {method} {route} started",
                    {"http.method": method, "http.route": route},
                )

            started_at = time.perf_counter_ns()
            try:
                await self.app(scope, receive, send_wrapper)
            except BaseException as exc:
                failed = exc
                if self.traces_enabled:
                    span.record_exception(exc)
                    span.set_status(Status(StatusCode.ERROR, safe_message(exc)))
                if classify_failure(exc, self.transparent_exceptions) is FailureKind.TRANSPARENT:
                    raise
                raise RequestProcessingError(safe_message(exc), cause=exc) from exc
            finally:
                duration_ms = (time.perf_counter_ns() - started_at) / 1_000_000
                final_status = status_code if status_code is not None else UNSTARTED_RESPONSE_STATUS
                if failed is None:
                    self._complete(span, method, route, final_status, duration_ms, failed)
                else:
                    # The downstream failure in flight must stay the one raised
                    try:
                        self._complete(span, method, route, final_status, duration_ms, failed)
                    except Exception:
                        logger.exception(
                            "optic_telemetry_emission_failed",
                            method=method,
                            route=route,
                            status_code=final_status,
                        )

    def _start_span(self, scope: Scope, method: str, route: str) -> Span:
        if self._tracer is None:
            return trace.INVALID_SPAN
        return self._tracer.start_span(
            f"{method} {route}",
            context=extract(_carrier(scope)),
            kind=SpanKind.SERVER,
        )

    def _activate(self, span: Span) -> AbstractContextManager[Any]:
        if not self.traces_enabled:
            return nullcontext()
        return trace.use_span(
            span,
            end_on_exit=False,
            record_exception=False,
            set_status_on_exception=False,
        )

    def _complete(
        self,
        span: Span,
        method: str,
        route: str,
        status_code: int,
        duration_ms: float,
        failed: BaseException | None,
    ) -> None:
        attributes = {
            "http.method": method,
            "http.route": route,
            "http.status_code": status_code,
        }

        if self._request_counter is not None and self._request_duration is not None:
            self._request_counter.add(1, attributes)
            self._request_duration.record(duration_ms, attributes)

        if self.traces_enabled:
            span.set_attribute("http.method", method)
            span.set_attribute("http.route", route)
            span.set_attribute("http.status_code", status_code)
            if status_code >= 400 and failed is None:
                span.set_status(Status(StatusCode.ERROR, f"HTTP {status_code}"))
            span.end()

        if self.logs_enabled:
            record_attributes: dict[str, Any] = {
                **attributes,
                "http.duration_ms": duration_ms,
            }
            if failed is not None:
                record_attributes["exception.message"] = safe_message(failed)
            self._emit(
                derive_severity(status_code, duration_ms, failed is not None),
                f"HTTP {method} {route} -> {status_code} in {round(duration_ms)}ms",
                record_attributes,
            )

    def _emit(
        self,
        severity: SeverityNumber,
        body: str,
        attributes: dict[str, Any],
    ) -> None:
        if self._logger is None:
            return
        now = time.time_ns()
        self._logger.emit(
            LogRecord(
                timestamp=now,
                observed_timestamp=now,
                severity_text=_SEVERITY_TEXT[severity],
                severity_number=severity,
                body=body,
                attributes=attributes,
            )
        )
