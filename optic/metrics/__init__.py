"""Application metrics through the Optic meter."""

from optic.metrics.registry import (
    MeterRegistry,
    TaggedCounter,
    TaggedGauge,
    TaggedHistogram,
    TaggedUpDownCounter,
)

__all__ = [
    "MeterRegistry",
    "TaggedCounter",
    "TaggedGauge",
    "TaggedHistogram",
    "TaggedUpDownCounter",
]
