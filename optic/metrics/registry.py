"""Meter registry bound to the Optic telemetry client.

Lets application code create counters, histograms and gauges by name
and have every measurement carry the registry's common tags (service
name, deployment environment, service version), the same way a
Micrometer registry bridged to OpenTelemetry behaves.

Example:
    registry = MeterRegistry(optic.meter("app"), {"service.name": "orders"})
    orders = registry.counter("orders.created")
    orders.add(1, {"channel": "web"})
"""

import threading
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from opentelemetry.metrics import CallbackOptions, Meter, Observation

Attributes = Mapping[str, Any]


def _merge(common: Mapping[str, str], attributes: Attributes | None) -> dict[str, Any]:
    merged: dict[str, Any] = dict(common)
    if attributes:
        merged.update(attributes)
    return merged


class TaggedCounter:
    """Monotonic counter adding the registry's common tags."""

    def __init__(self, registry: "MeterRegistry", instrument: Any) -> None:
        self._registry = registry
        self._instrument = instrument

    def add(self, amount: int | float = 1, attributes: Attributes | None = None) -> None:
        self._instrument.add(amount, _merge(self._registry.common_tags, attributes))


class TaggedUpDownCounter(TaggedCounter):
    """Counter that may also decrease."""


class TaggedHistogram:
    """Histogram adding the registry's common tags."""

    def __init__(self, registry: "MeterRegistry", instrument: Any) -> None:
        self._registry = registry
        self._instrument = instrument

    def record(self, value: int | float, attributes: Attributes | None = None) -> None:
        self._instrument.record(value, _merge(self._registry.common_tags, attributes))


class TaggedGauge:
    """Observable gauge; holds the callback registered with the meter."""

    def __init__(self, instrument: Any) -> None:
        self._instrument = instrument


class MeterRegistry:
    """Named-instrument registry with common tags.

    Asking twice for the same name returns the same handle. Asking for an
    existing name with another instrument type raises ValueError.
    """

    def __init__(self, meter: Meter, common_tags: Mapping[str, str] | None = None) -> None:
        self._meter = meter
        self._common_tags: dict[str, str] = {}
        self._instruments: dict[str, Any] = {}
        self._lock = threading.Lock()
        if common_tags:
            self.add_common_tags(**common_tags)

    @property
    def meter(self) -> Meter:
        return self._meter

    @property
    def common_tags(self) -> dict[str, str]:
        """Copy of the tags added to every measurement."""
        return dict(self._common_tags)

    def add_common_tags(self, **tags: str | None) -> None:
        """Add tags to every subsequent measurement; blank values are ignored."""
        for key, value in tags.items():
            if value is not None and value.strip():
                self._common_tags[key] = value

    def counter(self, name: str, description: str = "", unit: str = "1") -> TaggedCounter:
        return self._get_or_create(
            name,
            TaggedCounter,
            lambda: TaggedCounter(
                self, self._meter.create_counter(name, unit=unit, description=description)
            ),
        )

    def up_down_counter(
        self, name: str, description: str = "", unit: str = "1"
    ) -> TaggedUpDownCounter:
        return self._get_or_create(
            name,
            TaggedUpDownCounter,
            lambda: TaggedUpDownCounter(
                self,
                self._meter.create_up_down_counter(name, unit=unit, description=description),
            ),
        )

    def histogram(self, name: str, description: str = "", unit: str = "") -> TaggedHistogram:
        return self._get_or_create(
            name,
            TaggedHistogram,
            lambda: TaggedHistogram(
                self, self._meter.create_histogram(name, unit=unit, description=description)
            ),
        )

    def gauge(
        self,
        name: str,
        callback: Callable[[], int | float],
        description: str = "",
        unit: str = "",
    ) -> TaggedGauge:
        """Register an observable gauge reading ``callback`` at each collection."""

        def observe(_options: CallbackOptions) -> Iterable[Observation]:
            yield Observation(callback(), self.common_tags)

        return self._get_or_create(
            name,
            TaggedGauge,
            lambda: TaggedGauge(
                self._meter.create_observable_gauge(
                    name, callbacks=[observe], unit=unit, description=description
                )
            ),
        )

    def _get_or_create(self, name: str, kind: type, factory: Callable[[], Any]) -> Any:
        with self._lock:
            existing = self._instruments.get(name)
            if existing is not None:
                if type(existing) is not kind:
                    raise ValueError(
                        f"Instrument {name!r} already registered as {type(existing).__name__}"
                    )
                return existing
            instrument = factory()
            self._instruments[name] = instrument
            return instrument
