"""Tests for MeterRegistry."""

from unittest.mock import MagicMock

import pytest
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader

from optic.metrics.registry import (
    MeterRegistry,
    TaggedCounter,
    TaggedHistogram,
)
from tests.factories import metric_points


@pytest.fixture
def registry(metric_reader: InMemoryMetricReader) -> MeterRegistry:
    meter = MeterProvider(metric_readers=[metric_reader]).get_meter("test")
    return MeterRegistry(meter, {"service.name": "orders"})


class TestCommonTags:
    """Tests for common tag handling."""

    def test_blank_tags_ignored(self) -> None:
        """Should skip None and whitespace-only tag values."""
        registry = MeterRegistry(MagicMock())
        registry.add_common_tags(**{
            "service.name": "orders",
            "deployment.environment": "  ",
            "service.version": None,
        })
        assert registry.common_tags == {"service.name": "orders"}

    def test_common_tags_is_a_copy(self, registry: MeterRegistry) -> None:
        registry.common_tags["injected"] = "x"
        assert "injected" not in registry.common_tags


class TestInstruments:
    """Tests for instrument creation and recording."""

    def test_counter_records_with_common_tags(
        self, registry: MeterRegistry, metric_reader: InMemoryMetricReader
    ) -> None:
        """Should merge common tags with call attributes."""
        registry.counter("orders.created").add(2, {"channel": "web"})

        points = metric_points(metric_reader, "orders.created")
        assert len(points) == 1
        assert points[0].value == 2
        assert dict(points[0].attributes) == {"service.name": "orders", "channel": "web"}

    def test_histogram_records(
        self, registry: MeterRegistry, metric_reader: InMemoryMetricReader
    ) -> None:
        registry.histogram("orders.latency", unit="ms").record(12.5)

        points = metric_points(metric_reader, "orders.latency")
        assert points[0].count == 1
        assert points[0].sum == 12.5

    def test_up_down_counter(
        self, registry: MeterRegistry, metric_reader: InMemoryMetricReader
    ) -> None:
        counter = registry.up_down_counter("orders.in_flight")
        counter.add(3)
        counter.add(-1)

        assert metric_points(metric_reader, "orders.in_flight")[0].value == 2

    def test_gauge_reads_callback(
        self, registry: MeterRegistry, metric_reader: InMemoryMetricReader
    ) -> None:
        """Should observe the callback value with common tags."""
        registry.gauge("orders.queue_depth", lambda: 7)

        points = metric_points(metric_reader, "orders.queue_depth")
        assert points[0].value == 7
        assert dict(points[0].attributes) == {"service.name": "orders"}

    def test_same_name_returns_same_handle(self, registry: MeterRegistry) -> None:
        first = registry.counter("orders.created")
        assert registry.counter("orders.created") is first
        assert isinstance(first, TaggedCounter)

    def test_type_mismatch_raises(self, registry: MeterRegistry) -> None:
        """Should refuse to reuse a name for another instrument type."""
        registry.counter("orders.created")

        with pytest.raises(ValueError, match="orders.created"):
            registry.histogram("orders.created")

    def test_histogram_handle_type(self, registry: MeterRegistry) -> None:
        assert isinstance(registry.histogram("orders.latency"), TaggedHistogram)
