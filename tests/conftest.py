"""Shared fixtures for the Optic test suite."""

from collections.abc import Callable, Generator, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from optic.client import Optic
from optic.config import get_settings
from optic.config.models import OpticConfig
from optic.config.settings import set_toml_config

# Variables read by OpticConfig.from_env() and the TOML loader
OPTIC_ENV_VARS = (
    "OPTIC_API_KEY",
    "OPTIC_SERVICE_NAME",
    "OPTIC_ENDPOINT",
    "OPTIC_ENVIRONMENT",
    "OPTIC_SERVICE_VERSION",
    "OPTIC_CONFIG_DIR",
    "OPTIC_ENV",
    "OTEL_SERVICE_NAME",
    "OTEL_EXPORTER_OTLP_ENDPOINT",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove ambient OPTIC_/OTEL_ variables so tests see defaults."""
    for name in OPTIC_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Start and end every test without cached settings or TOML tables."""
    get_settings.cache_clear()
    set_toml_config({})
    yield
    get_settings.cache_clear()
    set_toml_config({})


@pytest.fixture
def test_config_dir(tmp_path: Path) -> Path:
    """Empty directory standing in for config/."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def mock_toml_files(test_config_dir: Path) -> Callable[[dict[str, str]], None]:
    """Write TOML files, keyed by file name, into the test config directory."""

    def _write(files: dict[str, str]) -> None:
        for filename, content in files.items():
            (test_config_dir / filename).write_text(content)

    return _write


@pytest.fixture
def env_override(
    monkeypatch: pytest.MonkeyPatch,
) -> Callable[[dict[str, str]], Any]:
    """Set environment variables for the duration of a ``with`` block.

    Usage:
        with env_override({"OPTIC_OPTIC__ENABLED": "false"}):
            settings = get_settings()
    """

    @contextmanager
    def _override(overrides: dict[str, str]) -> Iterator[None]:
        with monkeypatch.context() as patched:
            for key, value in overrides.items():
                patched.setenv(key, value)
            yield

    return _override


# Telemetry fixtures


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    """Collects finished spans."""
    return InMemorySpanExporter()


@pytest.fixture
def metric_reader() -> InMemoryMetricReader:
    """Collects metrics on demand."""
    return InMemoryMetricReader()


@pytest.fixture
def log_sink() -> MagicMock:
    """OpenTelemetry logger stand-in recording emitted log records."""
    return MagicMock()


@pytest.fixture
def make_client(
    span_exporter: InMemorySpanExporter,
    metric_reader: InMemoryMetricReader,
    log_sink: MagicMock,
) -> Callable[..., Optic]:
    """Factory for an Optic client backed by in-memory collectors.

    Keyword arguments override OpticConfig fields.
    """

    def _make_client(**overrides: Any) -> Optic:
        tracer_provider = TracerProvider()
        tracer_provider.add_span_processor(SimpleSpanProcessor(span_exporter))
        meter_provider = MeterProvider(metric_readers=[metric_reader])
        logger_provider = MagicMock()
        logger_provider.get_logger.return_value = log_sink

        values: dict[str, Any] = {"service_name": "test-service"}
        values.update(overrides)
        return Optic(
            OpticConfig(**values),
            tracer_provider=tracer_provider,
            meter_provider=meter_provider,
            logger_provider=logger_provider,
        )

    return _make_client
