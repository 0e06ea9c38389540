"""Optic telemetry client.

A thin facade over the OpenTelemetry SDK providers. The client owns one
tracer provider, one meter provider and one logger provider, all sharing
the same resource, and hands out named tracers, meters and loggers to
instrumentation such as the HTTP telemetry middleware.

Usage:
    from optic.client import Optic
    from optic.config.models import OpticConfig

    optic = Optic.init(OpticConfig.from_env())
    tracer = optic.tracer("my-component")
    ...
    optic.shutdown()
"""

from opentelemetry import _logs, metrics, trace
from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.prometheus import PrometheusMetricReader
from opentelemetry.sdk._logs import LoggerProvider
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import MetricReader, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from optic.config.models.client import OpticConfig
from optic.observability.logging import get_logger

logger = get_logger(__name__)

DEPLOYMENT_ENVIRONMENT = "deployment.environment"
API_KEY_HEADER = "x-api-key"


def create_resource(config: OpticConfig) -> Resource:
    """Create the resource shared by all three signals.

    Only non-blank identity fields are set, so that the SDK defaults
    (e.g. ``unknown_service``) apply when the service name is unknown.
    """
    attributes: dict[str, str] = {}
    if config.service_name.strip():
        attributes[SERVICE_NAME] = config.service_name
    if config.environment.strip():
        attributes[DEPLOYMENT_ENVIRONMENT] = config.environment
    if config.service_version.strip():
        attributes[SERVICE_VERSION] = config.service_version
    return Resource.create(attributes)


class Optic:
    """Telemetry client handing out tracers, meters and loggers."""

    def __init__(
        self,
        config: OpticConfig,
        tracer_provider: TracerProvider,
        meter_provider: MeterProvider,
        logger_provider: LoggerProvider,
    ) -> None:
        self._config = config
        self._tracer_provider = tracer_provider
        self._meter_provider = meter_provider
        self._logger_provider = logger_provider
        self._shut_down = False

    @classmethod
    def init(cls, config: OpticConfig, register_global: bool = True) -> "Optic":
        """Build a client exporting all signals over OTLP.

        Args:
            config: Resolved client configuration
            register_global: Also install the providers as the global
                OpenTelemetry providers, so third-party instrumentation
                reports through the same pipeline

        Returns:
            Initialized Optic client
        """
        resource = create_resource(config)
        headers = {API_KEY_HEADER: config.api_key} if config.api_key else None
        insecure = config.endpoint.startswith("http://")

        tracer_provider = TracerProvider(resource=resource)
        tracer_provider.add_span_processor(
            BatchSpanProcessor(
                OTLPSpanExporter(endpoint=config.endpoint, insecure=insecure, headers=headers)
            )
        )

        readers: list[MetricReader] = [
            PeriodicExportingMetricReader(
                OTLPMetricExporter(endpoint=config.endpoint, insecure=insecure, headers=headers),
                export_interval_millis=config.export_interval_ms,
            )
        ]
        if config.prometheus_enabled:
            readers.append(PrometheusMetricReader())
        meter_provider = MeterProvider(resource=resource, metric_readers=readers)

        logger_provider = LoggerProvider(resource=resource)
        logger_provider.add_log_record_processor(
            BatchLogRecordProcessor(
                OTLPLogExporter(endpoint=config.endpoint, insecure=insecure, headers=headers)
            )
        )

        if register_global:
            trace.set_tracer_provider(tracer_provider)
            metrics.set_meter_provider(meter_provider)
            _logs.set_logger_provider(logger_provider)

        logger.info(
            "optic_initialized",
            service_name=config.service_name,
            endpoint=config.endpoint,
            environment=config.environment,
            traces=config.enable_traces,
            metrics=config.enable_metrics,
            logs=config.enable_logs,
            prometheus=config.prometheus_enabled,
        )

        return cls(config, tracer_provider, meter_provider, logger_provider)

    @property
    def config(self) -> OpticConfig:
        """Client configuration."""
        return self._config

    @property
    def is_shut_down(self) -> bool:
        return self._shut_down

    def tracer(self, name: str) -> trace.Tracer:
        return self._tracer_provider.get_tracer(name)

    def meter(self, name: str) -> metrics.Meter:
        return self._meter_provider.get_meter(name)

    def logger(self, name: str) -> _logs.Logger:
        return self._logger_provider.get_logger(name)

    def force_flush(self) -> None:
        """Export everything buffered so far."""
        self._tracer_provider.force_flush()
        self._meter_provider.force_flush()
        self._logger_provider.force_flush()

    def shutdown(self) -> None:
        """Flush and close all providers.

        Safe to call multiple times - subsequent calls are no-ops.
        """
        if self._shut_down:
            return
        self._shut_down = True

        self._tracer_provider.shutdown()
        self._meter_provider.shutdown()
        self._logger_provider.shutdown()

        logger.info("optic_shutdown", service_name=self._config.service_name)
