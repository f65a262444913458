"""Tests for configuration validation with Pydantic."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from steadfast.domain.config import AppConfig, BackoffSpec, LoggingConfig
from steadfast.infrastructure.config.config_manager import ConfigManager, ConfigurationError


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path, monkeypatch):
    """Keep config discovery away from the developer's own files"""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("STEADFAST_BACKOFF_COUNT", raising=False)
    monkeypatch.delenv("STEADFAST_LOG_LEVEL", raising=False)


def _write_config(path: Path, data) -> Path:
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


class TestLoggingConfigValidation:
    """Tests for LoggingConfig validation."""

    def test_default_level(self):
        """Test default level"""
        assert LoggingConfig().level == "INFO"

    def test_level_is_normalized(self):
        """Test lowercase and WARN aliases"""
        assert LoggingConfig(level="debug").level == "DEBUG"
        assert LoggingConfig(level="warn").level == "WARNING"

    def test_invalid_level(self):
        """Test unknown level names"""
        with pytest.raises(ValidationError, match="level"):
            LoggingConfig(level="chatty")


class TestAppConfigValidation:
    """Tests for AppConfig validation."""

    def test_nested_backoff_from_dict(self):
        """Test backoff section is validated into a BackoffSpec"""
        config = AppConfig(backoff={"count": 4, "first_delay": 0.5})
        assert isinstance(config.backoff, BackoffSpec)
        assert config.backoff.count == 4
        assert config.backoff.first_delay == 0.5

    def test_invalid_backoff(self):
        """Test invalid nested values"""
        with pytest.raises(ValidationError, match="first_delay"):
            AppConfig(backoff={"first_delay": -1})

    def test_unknown_section(self):
        """Test unknown fields are rejected"""
        with pytest.raises(ValidationError):
            AppConfig(unknown={})


class TestConfigManager:
    """Tests for ConfigManager."""

    def test_default_config_is_valid(self):
        """Test default configuration is valid"""
        manager = ConfigManager()
        assert manager.config_path is None
        assert isinstance(manager.config, AppConfig)
        assert manager.get_backoff_spec() == BackoffSpec()

    def test_loads_file(self, tmp_path):
        """Test values from .steadfast.yml override defaults"""
        config_path = _write_config(
            tmp_path / "custom.yml",
            {"backoff": {"count": 3, "growth_factor": 2.0}, "logging": {"level": "debug"}},
        )
        manager = ConfigManager(config_path=config_path)
        spec = manager.get_backoff_spec()
        assert spec.count == 3
        assert spec.growth_factor == 2.0
        assert spec.first_delay == 0.05
        assert manager.get_logging_config().level == "DEBUG"

    def test_accepts_string_path(self, tmp_path):
        """Test config_path given as a string"""
        config_path = _write_config(tmp_path / "custom.yml", {"backoff": {"count": 2}})
        manager = ConfigManager(config_path=str(config_path))
        assert manager.get_backoff_spec().count == 2

    def test_finds_file_in_parent_directory(self, tmp_path, monkeypatch):
        """Test discovery walks up from the current directory"""
        _write_config(tmp_path / ".steadfast.yml", {"backoff": {"count": 6}})
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)
        manager = ConfigManager()
        assert manager.config_path == tmp_path / ".steadfast.yml"
        assert manager.get_backoff_spec().count == 6

    def test_invalid_values_raise_configuration_error(self, tmp_path):
        """Test validation errors are reported per field"""
        config_path = _write_config(tmp_path / "bad.yml", {"backoff": {"max_delay": -3}})
        with pytest.raises(ConfigurationError, match="backoff.max_delay"):
            ConfigManager(config_path=config_path)

    def test_malformed_yaml(self, tmp_path):
        """Test unreadable YAML fails fast"""
        config_path = tmp_path / "broken.yml"
        config_path.write_text("backoff: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Failed to read"):
            ConfigManager(config_path=config_path)

    def test_non_mapping_yaml(self, tmp_path):
        """Test a YAML document that is not a mapping"""
        config_path = tmp_path / "list.yml"
        config_path.write_text("- 1\n- 2\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="mapping"):
            ConfigManager(config_path=config_path)

    def test_env_overrides_work(self, monkeypatch):
        """Test environment variable overrides"""
        monkeypatch.setenv("STEADFAST_BACKOFF_COUNT", "5")
        monkeypatch.setenv("STEADFAST_LOG_LEVEL", "error")
        manager = ConfigManager()
        assert manager.get_backoff_spec().count == 5
        assert manager.get_logging_config().level == "ERROR"

    def test_invalid_env_override(self, monkeypatch):
        """Test env overrides are validated too"""
        monkeypatch.setenv("STEADFAST_BACKOFF_COUNT", "-1")
        with pytest.raises(ConfigurationError, match="count"):
            ConfigManager()

    def test_get_with_dot_notation(self):
        """Test dotted key lookup"""
        manager = ConfigManager()
        assert manager.get("backoff.count") == 1
        assert manager.get("logging") == {"level": "INFO"}
        assert manager.get("backoff.missing", "fallback") == "fallback"
