"""Tests for the rounds config loader."""

from __future__ import annotations

import dataclasses
from pathlib import Path

import pytest

from src.sync import config_loader
from src.sync.config_loader import (
    ConfigValidationError,
    RoundsConfig,
    get_rounds_config,
    load_rounds_config,
    reload_rounds_config,
)

_VALID = """
version: "2.0"
rounds_type: VENTILATOR
final_status: final
channels:
  spo2: SpO2
  resp: respiratory-rate
  pulse: pulse-rate
  temperature: body-temperature2
blood_pressure:
  source_channel: blood-pressure
temperature:
  timestamp_format: "%d/%m/%Y %H:%M"
"""


@pytest.fixture(autouse=True)
def _reset_singleton():
    config_loader._config = None
    yield
    config_loader._config = None


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "rounds.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestBundledConfig:
    def test_channel_mapping(self) -> None:
        config = load_rounds_config()
        assert config.channel("spo2") == "SpO2"
        assert config.channel("resp") == "respiratory-rate"
        assert config.channel("pulse") == "heart-rate"
        assert config.channel("temperature") == "body-temperature1"

    def test_bp_comes_from_spo2_channel(self) -> None:
        config = load_rounds_config()
        assert config.bp_source_channel == "SpO2"
        assert config.bp_components == {"systolic": "systolic", "diastolic": "diastolic"}

    def test_rounds_constants(self) -> None:
        config = load_rounds_config()
        assert config.rounds_type == "NORMAL"
        assert config.final_status == "final"
        assert config.temperature_timestamp_format == "%Y-%m-%d %H:%M:%S"

    def test_config_holds_only_validated_fields(self) -> None:
        assert {f.name for f in dataclasses.fields(RoundsConfig)} == {
            "version",
            "rounds_type",
            "final_status",
            "channels",
            "bp_source_channel",
            "bp_components",
            "temperature_timestamp_format",
        }

    def test_unmapped_channel(self) -> None:
        with pytest.raises(KeyError):
            load_rounds_config().channel("bp")


class TestValidation:
    def test_custom_file(self, tmp_path: Path) -> None:
        config = load_rounds_config(_write(tmp_path, _VALID))
        assert config.version == "2.0"
        assert config.rounds_type == "VENTILATOR"
        assert config.channel("pulse") == "pulse-rate"
        assert config.bp_source_channel == "blood-pressure"

    def test_missing_channels_reported_together(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "channels:\n  spo2: SpO2\n")
        with pytest.raises(ConfigValidationError) as excinfo:
            load_rounds_config(path)
        message = str(excinfo.value)
        assert "channels.resp is missing" in message
        assert "channels.temperature is missing" in message
        assert "blood_pressure.source_channel is missing" in message

    def test_bad_components(self, tmp_path: Path) -> None:
        text = _VALID.replace(
            "  source_channel: blood-pressure\n",
            "  source_channel: blood-pressure\n  components:\n    top: sys\n",
        )
        with pytest.raises(ConfigValidationError, match="components"):
            load_rounds_config(_write(tmp_path, text))

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigValidationError, match="YAML parse error"):
            load_rounds_config(_write(tmp_path, "channels: [unterminated\n"))

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_rounds_config(tmp_path / "nope.yaml")


class TestSingleton:
    def test_loaded_once(self) -> None:
        assert get_rounds_config() is get_rounds_config()

    def test_reload_replaces_singleton(self, tmp_path: Path) -> None:
        before = get_rounds_config()
        after = reload_rounds_config(_write(tmp_path, _VALID))
        assert after is not before
        assert get_rounds_config() is after

    def test_failed_reload_keeps_old_config(self, tmp_path: Path) -> None:
        before = get_rounds_config()
        with pytest.raises(ConfigValidationError):
            reload_rounds_config(_write(tmp_path, "channels: {}\n"))
        assert get_rounds_config() is before
