"""Derive a CARE daily-rounds payload from a device's recent window.

Pure functions with no I/O.  Every field comes from the *latest* entry of the
relevant observation window and only counts when that entry is final.

Field mapping (channels from rounds_config.yaml):
    spo2, resp, pulse   latest final value, else null
    bp                  {systolic, diastolic} from the latest entry of the
                        configured BP channel (SpO2 by default), if final
    temperature         latest final value, nulled outside its own
                        [low-limit, high-limit]
    temperature_measured_at  that entry's timestamp when temperature is kept
    taken_at            the buffer's last_updated
    rounds_type         constant from config ("NORMAL")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from src.observations.base import DeviceBuffer, Observation
from src.sync.config_loader import RoundsConfig, get_rounds_config

logger = logging.getLogger("vigil.sync.rounds")


@dataclass
class BloodPressure:
    systolic: Any
    diastolic: Any


@dataclass
class DailyRoundPayload:
    """Body POSTed to CARE's daily_rounds endpoint."""

    taken_at: datetime | None
    rounds_type: str
    spo2: Any = None
    resp: Any = None
    pulse: Any = None
    bp: BloodPressure | None = None
    temperature: Any = None
    temperature_measured_at: datetime | None = None

    def to_json(self) -> dict[str, Any]:
        return {
            "taken_at": self.taken_at.isoformat() if self.taken_at else None,
            "rounds_type": self.rounds_type,
            "spo2": self.spo2,
            "resp": self.resp,
            "pulse": self.pulse,
            "bp": (
                {"systolic": self.bp.systolic, "diastolic": self.bp.diastolic}
                if self.bp
                else None
            ),
            "temperature": self.temperature,
            "temperature_measured_at": (
                self.temperature_measured_at.isoformat()
                if self.temperature_measured_at
                else None
            ),
        }


def _is_final(reading: Observation | None, config: RoundsConfig) -> bool:
    return reading is not None and reading.status == config.final_status


def final_value(reading: Observation | None, config: RoundsConfig) -> Any:
    """Return the reading's value when it is final, else None."""
    if not _is_final(reading, config):
        return None
    return reading.value


def _as_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def within_limits(reading: Observation, value: Any) -> bool:
    """True unless ``value`` falls outside the reading's own declared limits.

    A missing or non-numeric limit does not constrain that side.
    """
    number = _as_number(value)
    if number is None:
        return True
    low = _as_number(reading.low_limit)
    high = _as_number(reading.high_limit)
    if low is not None and number < low:
        return False
    if high is not None and number > high:
        return False
    return True


def parse_measured_at(value: str | None, timestamp_format: str) -> datetime | None:
    """Parse a monitor timestamp into a timezone-aware UTC datetime.

    The monitor's fixed format is tried first, then ISO-8601.  Naive values
    are taken as UTC.  Returns None when the value is missing or unparseable.
    """
    if not value:
        return None
    try:
        parsed = datetime.strptime(value, timestamp_format)
    except (TypeError, ValueError):
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            logger.warning("Could not parse monitor timestamp: %r", value)
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _blood_pressure(buffer: DeviceBuffer, config: RoundsConfig) -> BloodPressure | None:
    source = buffer.latest(config.bp_source_channel)
    if not _is_final(source, config):
        return None
    return BloodPressure(
        systolic=source.component_value(config.bp_components["systolic"]),
        diastolic=source.component_value(config.bp_components["diastolic"]),
    )


def build_daily_round(
    buffer: DeviceBuffer, config: RoundsConfig | None = None
) -> DailyRoundPayload:
    """Build the rounds payload for one device buffer.

    Args:
        buffer: Point-in-time copy of the device's window.
        config: Channel mapping; the global rounds config by default.

    Returns:
        DailyRoundPayload ready to submit.
    """
    cfg = config or get_rounds_config()

    temperature_reading = buffer.latest(cfg.channel("temperature"))
    temperature = final_value(temperature_reading, cfg)
    temperature_measured_at = None
    if temperature is not None:
        if within_limits(temperature_reading, temperature):
            temperature_measured_at = parse_measured_at(
                temperature_reading.date_time, cfg.temperature_timestamp_format
            )
        else:
            logger.info(
                "Discarding temperature %s for %s: outside [%s, %s]",
                temperature,
                buffer.device_id,
                temperature_reading.low_limit,
                temperature_reading.high_limit,
            )
            temperature = None

    return DailyRoundPayload(
        taken_at=buffer.last_updated,
        rounds_type=cfg.rounds_type,
        spo2=final_value(buffer.latest(cfg.channel("spo2")), cfg),
        resp=final_value(buffer.latest(cfg.channel("resp")), cfg),
        pulse=final_value(buffer.latest(cfg.channel("pulse")), cfg),
        bp=_blood_pressure(buffer, cfg),
        temperature=temperature,
        temperature_measured_at=temperature_measured_at,
    )
