"""Load, validate, and hot-reload the daily rounds derivation config.

The config lives in ``rounds_config.yaml`` alongside this module.  It is
loaded once and cached; ``reload_rounds_config()`` re-reads it from disk
without a restart.

Usage::

    from src.sync.config_loader import get_rounds_config

    config = get_rounds_config()
    config.channel("pulse")      # 'heart-rate'
    config.bp_source_channel     # 'SpO2'
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path

import yaml

logger = logging.getLogger("vigil.sync.config")

_CONFIG_PATH = Path(__file__).parent / "rounds_config.yaml"

#: Payload fields that must be mapped to a monitor channel.
REQUIRED_CHANNELS = ("spo2", "resp", "pulse", "temperature")


@dataclass
class RoundsConfig:
    """Validated in-memory form of rounds_config.yaml.

    Attributes:
        version:                    Config schema version string.
        rounds_type:                Constant ``rounds_type`` sent to CARE.
        final_status:               Status value a reading must carry to count.
        channels:                   payload field → observation_id.
        bp_source_channel:          observation_id carrying systolic/diastolic.
        bp_components:              payload key → component name on the reading.
        temperature_timestamp_format: strptime format of the monitor timestamp.
    """

    version: str
    rounds_type: str
    final_status: str
    channels: dict[str, str]
    bp_source_channel: str
    bp_components: dict[str, str]
    temperature_timestamp_format: str

    def channel(self, payload_field: str) -> str:
        """Return the observation_id feeding a payload field.

        Raises:
            KeyError: If the field is not mapped.
        """
        return self.channels[payload_field]


class ConfigValidationError(ValueError):
    """Raised when rounds_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Raises:
        FileNotFoundError:     If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Rounds config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _validate_and_build(raw: dict) -> RoundsConfig:
    """Validate the raw YAML dict and construct a RoundsConfig.

    Raises:
        ConfigValidationError: If required fields are missing or invalid.
    """
    errors: list[str] = []

    channels_raw = raw.get("channels") or {}
    if not isinstance(channels_raw, dict):
        errors.append("'channels' must be a mapping of payload field→observation_id")
        channels_raw = {}
    channels = {str(k): str(v) for k, v in channels_raw.items() if v}
    for name in REQUIRED_CHANNELS:
        if name not in channels:
            errors.append(f"channels.{name} is missing")

    bp_raw = raw.get("blood_pressure") or {}
    bp_source = bp_raw.get("source_channel")
    if not bp_source:
        errors.append("blood_pressure.source_channel is missing")
    bp_components = bp_raw.get("components") or {"systolic": "systolic", "diastolic": "diastolic"}
    if set(bp_components) != {"systolic", "diastolic"}:
        errors.append(
            f"blood_pressure.components must map exactly systolic and diastolic, got {sorted(bp_components)}"
        )

    temp_raw = raw.get("temperature") or {}
    ts_format = temp_raw.get("timestamp_format", "%Y-%m-%d %H:%M:%S")
    if "%" not in str(ts_format):
        errors.append(f"temperature.timestamp_format {ts_format!r} is not a strptime format")

    if errors:
        raise ConfigValidationError(
            f"rounds_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return RoundsConfig(
        version=str(raw.get("version", "1.0")),
        rounds_type=str(raw.get("rounds_type", "NORMAL")),
        final_status=str(raw.get("final_status", "final")),
        channels=channels,
        bp_source_channel=str(bp_source),
        bp_components={str(k): str(v) for k, v in bp_components.items()},
        temperature_timestamp_format=str(ts_format),
    )


def load_rounds_config(path: Path | None = None) -> RoundsConfig:
    """Load and validate the rounds config from disk.

    Args:
        path: Override path to YAML. Uses the bundled rounds_config.yaml by default.
    """
    target = path or _CONFIG_PATH
    config = _validate_and_build(_load_yaml(target))
    logger.info("Loaded rounds config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: RoundsConfig | None = None
_config_lock = threading.Lock()


def get_rounds_config() -> RoundsConfig:
    """Return the global RoundsConfig singleton, loading it on first call."""
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:
                _config = load_rounds_config()
    return _config


def reload_rounds_config(path: Path | None = None) -> RoundsConfig:
    """Reload from disk and replace the singleton.

    If validation fails the old config is retained and the error re-raised.
    """
    global _config
    new_config = load_rounds_config(path)
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info("Reloaded rounds config: %s → %s", old_version, new_config.version)
    return new_config
