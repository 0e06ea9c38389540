"""Layered configuration for Optic.

Usage:
    from optic.config import get_settings

    settings = get_settings()
    if settings.optic.enabled:
        ...
"""

from functools import lru_cache

from optic.config.loader import load_config
from optic.config.settings import Settings, set_toml_config


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load the settings once per process.

    TOML files are read first and installed as the lowest-precedence
    source; OPTIC_* environment variables override them. Use
    reload_settings() to pick up changes.
    """
    set_toml_config(load_config())
    return Settings()


def reload_settings() -> Settings:
    """Drop the cached settings and load them again."""
    get_settings.cache_clear()
    return get_settings()


__all__ = ["get_settings", "reload_settings", "Settings"]
