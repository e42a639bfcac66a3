"""Tests for config loading with YAML and JSON support."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError
import yaml

from powerhour.core.config import AppConfig, detect_format, load_app_config, load_config


@pytest.fixture(autouse=True)
def no_env_override(monkeypatch):
    monkeypatch.delenv("POWERHOUR_DATA_DIR", raising=False)


@pytest.fixture
def sample_config_data():
    """Sample configuration data for testing."""
    return {
        "data_dir": "/srv/powerhour",
        "library": {"cache_expiry_days": 3, "auto_refresh_enabled": False},
        "scan": {"progress_interval": 25},
        "logging": {"level": "DEBUG", "structured": True},
    }


def test_detect_format_json():
    """Test format detection for JSON files."""
    assert detect_format("powerhour.json") == "json"
    assert detect_format(Path("powerhour.JSON")) == "json"


def test_detect_format_yaml():
    """Test format detection for YAML files."""
    assert detect_format("powerhour.yaml") == "yaml"
    assert detect_format(Path("powerhour.yml")) == "yaml"


def test_detect_format_invalid():
    """Test format detection for invalid extensions."""
    with pytest.raises(ValueError) as exc_info:
        detect_format("powerhour.toml")

    assert "Unsupported config format" in str(exc_info.value)


def test_load_config_json(tmp_path, sample_config_data):
    """Test loading JSON config."""
    config_file = tmp_path / "powerhour.json"
    config_file.write_text(json.dumps(sample_config_data), encoding="utf-8")

    config = load_config(config_file)

    assert config["data_dir"] == "/srv/powerhour"
    assert config["scan"]["progress_interval"] == 25


def test_load_config_yaml(tmp_path, sample_config_data):
    """Test loading YAML config."""
    config_file = tmp_path / "powerhour.yaml"
    config_file.write_text(yaml.dump(sample_config_data), encoding="utf-8")

    config = load_config(config_file)

    assert config["library"]["cache_expiry_days"] == 3


def test_load_config_empty_yaml(tmp_path):
    """Test that an empty YAML file loads as an empty dict."""
    config_file = tmp_path / "powerhour.yaml"
    config_file.write_text("", encoding="utf-8")

    assert load_config(config_file) == {}


def test_load_config_invalid_json(tmp_path):
    """Test that malformed JSON raises ValueError."""
    config_file = tmp_path / "powerhour.json"
    config_file.write_text("{not json", encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid JSON"):
        load_config(config_file)


def test_load_config_invalid_yaml(tmp_path):
    """Test that malformed YAML raises ValueError."""
    config_file = tmp_path / "powerhour.yaml"
    config_file.write_text("scan: [unterminated", encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid YAML"):
        load_config(config_file)


def test_load_config_missing_file(tmp_path):
    """Test that a missing file raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")


def test_load_app_config(tmp_path, sample_config_data):
    """Test loading and validating the application config."""
    config_file = tmp_path / "powerhour.yaml"
    config_file.write_text(yaml.dump(sample_config_data), encoding="utf-8")

    config = load_app_config(config_file)

    assert isinstance(config, AppConfig)
    assert config.data_dir == "/srv/powerhour"
    assert config.library.cache_expiry_days == 3
    assert config.library.auto_refresh_enabled is False
    assert config.logging.structured is True
    # Untouched sections keep their defaults
    assert config.audio.sample_rate == 44100
    assert config.storage.mixes == "mixes"


def test_load_app_config_missing_file_uses_defaults(tmp_path):
    """Test that a missing config file yields defaults."""
    config = load_app_config(tmp_path / "absent.yaml")

    assert config == AppConfig()
    assert config.library.cache_expiry_days == 7
    assert config.audio.max_clips == 60


def test_load_app_config_env_override(tmp_path, monkeypatch):
    """Test that POWERHOUR_DATA_DIR overrides data_dir."""
    monkeypatch.setenv("POWERHOUR_DATA_DIR", str(tmp_path / "env"))

    config = load_app_config(tmp_path / "absent.yaml")

    assert config.data_dir == str(tmp_path / "env")


def test_load_app_config_rejects_invalid_values(tmp_path):
    """Test that out-of-range values fail validation."""
    config_file = tmp_path / "powerhour.json"
    config_file.write_text(json.dumps({"library": {"cache_expiry_days": 0}}), encoding="utf-8")

    with pytest.raises(ValidationError):
        load_app_config(config_file)


def test_load_or_default_and_with_data_dir(tmp_path):
    """Test the AppConfig convenience constructors."""
    config = AppConfig.load_or_default(tmp_path / "absent.yaml").with_data_dir(tmp_path)

    assert config.data_dir == str(tmp_path)
    assert AppConfig.default_path() == Path("powerhour.yaml")
