"""Settings of an application embedding Optic."""

from typing import Any

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from optic.config.models.observability import LoggingConfig
from optic.config.models.properties import OpticProperties

# Merged TOML tables, installed by get_settings() before Settings is built
_toml_values: dict[str, Any] = {}


def set_toml_config(config: dict[str, Any]) -> None:
    """Install the merged TOML tables read by the next Settings()."""
    global _toml_values
    _toml_values = dict(config)


class TomlConfigSettingsSource(PydanticBaseSettingsSource):
    """Settings source serving the installed TOML tables."""

    def get_field_value(
        self, field: Any, field_name: str  # noqa: ARG002
    ) -> tuple[Any, str, bool]:
        value = _toml_values.get(field_name)
        return value, field_name, value is not None

    def __call__(self) -> dict[str, Any]:
        return dict(_toml_values)


class Settings(BaseSettings):
    """Application settings with the ``[optic]`` and ``[logging]`` tables.

    Sources, lowest precedence first: field defaults, TOML tables,
    OPTIC_* environment variables (``__`` separates nesting levels, so
    ``OPTIC_OPTIC__ENABLE_LOGS=false`` switches request logs off), and
    keyword arguments.
    """

    model_config = SettingsConfigDict(
        env_prefix="OPTIC_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(
        default="",
        description="Application name, used as the fallback service name",
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging of Optic's own diagnostics",
    )
    optic: OpticProperties = Field(
        default_factory=OpticProperties,
        description="Optic integration properties",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls),
        )
