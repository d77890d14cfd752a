"""Authoritative in-memory state of the hub.

SINGLE SOURCE OF TRUTH for "current state" queries:
- actuator (bulb / lock) on/off
- latest temperature/humidity sample

Every mutation goes through one asyncio.Lock, so no two callers can
interleave a read-modify-write on the snapshot. Readers get a copy.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Optional

from ..clock import epoch_seconds, to_iso, utc_now
from ..errors import ValidationError

logger = logging.getLogger(__name__)


def round_one_decimal(value: float) -> float:
    """Round half up to one decimal place: 23.456 -> 23.5, 55.04 -> 55.0."""
    return math.floor(value * 10 + 0.5) / 10


def _coerce_measurement(name: str, raw: Any) -> float:
    if raw is None:
        raise ValidationError(f"Missing required field: {name}", field=name)
    # bool is an int subclass; a device sending true/false is a bug.
    if isinstance(raw, bool):
        raise ValidationError(f"Field '{name}' must be numeric", field=name)
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        try:
            value = float(raw.strip())
        except ValueError:
            raise ValidationError(f"Field '{name}' must be numeric", field=name) from None
    else:
        raise ValidationError(f"Field '{name}' must be numeric", field=name)

    if math.isnan(value) or math.isinf(value):
        raise ValidationError(f"Field '{name}' must be a finite number", field=name)
    return value


@dataclass
class StateSnapshot:
    """Current state of the actuator and the environment sensor."""

    actuator_on: bool = False
    temperature: float = 0.0
    humidity: float = 0.0
    sample_timestamp: Optional[int] = None
    sample_datetime: Optional[str] = None
    last_updated: Optional[datetime] = None

    @property
    def actuator_state(self) -> str:
        return "on" if self.actuator_on else "off"

    def to_dict(self) -> dict:
        return {
            "temperature": self.temperature,
            "humidity": self.humidity,
            "timestamp": self.sample_timestamp if self.sample_timestamp is not None else "",
            "datetime": self.sample_datetime or "",
            "bulbState": self.actuator_on,
            "lastUpdated": to_iso(self.last_updated) if self.last_updated else None,
        }

    def environment_dict(self) -> dict:
        """Sensor part only, as mirrored to ``sensors/environment``."""
        return {
            "temperature": self.temperature,
            "humidity": self.humidity,
            "timestamp": self.sample_timestamp if self.sample_timestamp is not None else "",
            "datetime": self.sample_datetime or "",
        }


class StateRegistry:
    def __init__(self, initial: Optional[StateSnapshot] = None) -> None:
        self._snapshot = initial or StateSnapshot()
        self._lock = asyncio.Lock()

    async def get(self) -> StateSnapshot:
        async with self._lock:
            return replace(self._snapshot)

    async def set_actuator(self, on: bool) -> StateSnapshot:
        async with self._lock:
            self._snapshot.actuator_on = bool(on)
            logger.debug("[STATE] actuator=%s", self._snapshot.actuator_state)
            return replace(self._snapshot)

    async def apply_sensor_reading(
        self,
        temperature: Any,
        humidity: Any,
        timestamp: Optional[int] = None,
        datetime_iso: Optional[str] = None,
    ) -> StateSnapshot:
        """Validate, round and store a sensor sample.

        Missing ``timestamp``/``datetime_iso`` are taken from the wall clock.
        The actuator flag is preserved. Raises ValidationError without
        touching the snapshot when a measurement is missing or not numeric.
        """
        temp = round_one_decimal(_coerce_measurement("temperature", temperature))
        hum = round_one_decimal(_coerce_measurement("humidity", humidity))

        now = utc_now()
        async with self._lock:
            self._snapshot = StateSnapshot(
                actuator_on=self._snapshot.actuator_on,
                temperature=temp,
                humidity=hum,
                sample_timestamp=timestamp if timestamp else epoch_seconds(now),
                sample_datetime=datetime_iso if datetime_iso else to_iso(now),
                last_updated=now,
            )
            return replace(self._snapshot)
