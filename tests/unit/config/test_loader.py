"""Tests for the layered TOML loader."""

import tomllib
from pathlib import Path

import pytest

from optic.config.loader import (
    deep_merge,
    get_config_dir,
    get_environment,
    load_config,
    load_toml,
)


class TestDeepMerge:
    """Tests for deep_merge function."""

    def test_merges_shared_tables(self) -> None:
        """Should merge tables present on both sides."""
        base = {"optic": {"enabled": True, "service_name": "orders"}, "debug": False}
        override = {"optic": {"service_name": "billing", "environment": "prod"}}
        result = deep_merge(base, override)
        assert result == {
            "optic": {"enabled": True, "service_name": "billing", "environment": "prod"},
            "debug": False,
        }

    def test_scalar_replaces_table(self) -> None:
        """Should let a scalar replace a table."""
        result = deep_merge({"optic": {"enabled": True}}, {"optic": "off"})
        assert result == {"optic": "off"}

    def test_does_not_mutate_base(self) -> None:
        """Should leave the base untouched."""
        base = {"a": 1}
        deep_merge(base, {"b": 2})
        assert base == {"a": 1}


class TestLoadToml:
    """Tests for load_toml function."""

    def test_parses_tables(self, tmp_path: Path) -> None:
        """Should parse nested tables."""
        toml_file = tmp_path / "test.toml"
        toml_file.write_text('[optic]\nservice_name = "orders"\nexport_interval_ms = 5000')

        result = load_toml(toml_file)
        assert result == {"optic": {"service_name": "orders", "export_interval_ms": 5000}}

    def test_missing_file(self, tmp_path: Path) -> None:
        """Should raise FileNotFoundError for a missing file."""
        with pytest.raises(FileNotFoundError):
            load_toml(tmp_path / "nonexistent.toml")

    def test_invalid_syntax(self, tmp_path: Path) -> None:
        """Should surface syntax errors."""
        invalid_file = tmp_path / "invalid.toml"
        invalid_file.write_text("invalid = [unclosed")

        with pytest.raises(tomllib.TOMLDecodeError):
            load_toml(invalid_file)


class TestGetEnvironment:
    """Tests for get_environment function."""

    def test_reads_optic_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Returns OPTIC_ENV value when set."""
        monkeypatch.setenv("OPTIC_ENV", "production")
        assert get_environment() == "production"

    def test_defaults_to_development(self) -> None:
        """Defaults to 'development' when OPTIC_ENV not set."""
        assert get_environment() == "development"


class TestGetConfigDir:
    """Tests for get_config_dir function."""

    def test_explicit_directory(
        self, test_config_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Uses OPTIC_CONFIG_DIR when set."""
        monkeypatch.setenv("OPTIC_CONFIG_DIR", str(test_config_dir))
        assert get_config_dir() == test_config_dir

    def test_explicit_directory_must_exist(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Raises error when OPTIC_CONFIG_DIR doesn't exist."""
        monkeypatch.setenv("OPTIC_CONFIG_DIR", str(tmp_path / "missing"))

        with pytest.raises(FileNotFoundError):
            get_config_dir()


class TestLoadConfig:
    """Tests for load_config function."""

    @pytest.fixture(autouse=True)
    def _config_dir(self, test_config_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPTIC_CONFIG_DIR", str(test_config_dir))

    def test_loads_default_config(self, mock_toml_files, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should read default.toml."""
        mock_toml_files({"default.toml": "app_name = 'orders'\n[optic]\nenabled = true"})
        monkeypatch.setenv("OPTIC_ENV", "nonexistent")

        assert load_config() == {"app_name": "orders", "optic": {"enabled": True}}

    def test_merges_environment_config(
        self, mock_toml_files, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Should overlay the active environment file."""
        mock_toml_files({
            "default.toml": "[optic]\nservice_name = 'orders'\nenable_logs = true",
            "staging.toml": "[optic]\nenable_logs = false",
        })
        monkeypatch.setenv("OPTIC_ENV", "staging")

        assert load_config() == {"optic": {"service_name": "orders", "enable_logs": False}}

    def test_missing_default_is_empty(self) -> None:
        """Missing default.toml yields an empty configuration."""
        assert load_config() == {}

    def test_missing_default_raises_when_required(self) -> None:
        """Missing default.toml raises when the file is required."""
        with pytest.raises(FileNotFoundError, match="default.toml"):
            load_config(required=True)

    def test_environment_file_without_default(
        self, mock_toml_files, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Environment file alone is still loaded."""
        mock_toml_files({"production.toml": "debug = false"})
        monkeypatch.setenv("OPTIC_ENV", "production")

        assert load_config() == {"debug": False}
