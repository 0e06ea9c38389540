"""Locate and read the layered TOML configuration.

The optional ``[optic]`` table and the ``[logging]`` table live in
``config/default.toml``, with per-environment overrides in
``config/<OPTIC_ENV>.toml``. Neither file is required: an application
that configures Optic only through the environment ships none.
"""

import os
import tomllib
from pathlib import Path
from typing import Any

CONFIG_DIR_VAR = "OPTIC_CONFIG_DIR"
ENVIRONMENT_VAR = "OPTIC_ENV"
DEFAULT_ENVIRONMENT = "development"

# Parent directories searched for a config/ folder
SEARCH_DEPTH = 5


def get_config_dir() -> Path:
    """Return the directory holding the TOML files.

    OPTIC_CONFIG_DIR wins when set and must exist. Otherwise the first
    ``config/`` folder found walking up from the working directory is
    used, falling back to a relative ``config`` path.

    Raises:
        FileNotFoundError: If OPTIC_CONFIG_DIR points nowhere
    """
    explicit = os.environ.get(CONFIG_DIR_VAR)
    if explicit:
        path = Path(explicit)
        if not path.exists():
            raise FileNotFoundError(f"{CONFIG_DIR_VAR} does not exist: {explicit}")
        return path

    here = Path.cwd()
    for candidate in [here, *here.parents][:SEARCH_DEPTH]:
        if (candidate / "config").is_dir():
            return candidate / "config"
    return Path("config")


def get_environment() -> str:
    """Name of the active environment (OPTIC_ENV, default ``development``)."""
    return os.environ.get(ENVIRONMENT_VAR, DEFAULT_ENVIRONMENT)


def load_toml(file_path: Path) -> dict[str, Any]:
    """Parse one TOML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        tomllib.TOMLDecodeError: If the TOML syntax is invalid
    """
    if not file_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")
    with file_path.open("rb") as f:
        return tomllib.load(f)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``.

    Tables present on both sides are merged recursively; any other value
    from ``override`` replaces the one in ``base``.
    """
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def load_config(required: bool = False) -> dict[str, Any]:
    """Read default.toml, then overlay the active environment's file.

    Args:
        required: Raise when default.toml is missing instead of starting
            from an empty configuration

    Returns:
        Merged configuration dictionary
    """
    config_dir = get_config_dir()

    default_path = config_dir / "default.toml"
    if default_path.exists():
        config = load_toml(default_path)
    elif required:
        raise FileNotFoundError(
            f"Default configuration file not found: {default_path}. "
            f"Create it or point {CONFIG_DIR_VAR} at a directory containing it."
        )
    else:
        config = {}

    env_path = config_dir / f"{get_environment()}.toml"
    if env_path.exists():
        config = deep_merge(config, load_toml(env_path))

    return config
