"""Configuration model exports.

This module exports all configuration models for easy access:

    from optic.config.models import OpticConfig, OpticProperties
"""

from optic.config.models.client import DEFAULT_ENDPOINT, OpticConfig
from optic.config.models.observability import LoggingConfig
from optic.config.models.properties import OpticProperties, PrometheusConfig

__all__ = [
    "DEFAULT_ENDPOINT",
    "LoggingConfig",
    "OpticConfig",
    "OpticProperties",
    "PrometheusConfig",
]
