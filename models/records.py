"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Union


class BackendKind(str, Enum):
    """Which store is serving reads and writes for this process."""

    durable = "durable"
    fallback = "fallback"


class PolicyMode(str, Enum):
    """Retention policy driving the reset scheduler."""

    calendar_day = "calendar_day"
    rolling_window = "rolling_window"


# A civil day for CALENDAR_DAY, an absolute instant for ROLLING_WINDOW.
ResetMarker = Union[date, datetime]


@dataclass(frozen=True, slots=True)
class Reading:
    """A validated sensor sample plus pump state, not yet stored."""

    temperature: float
    air_humidity: float
    soil_humidity: int
    light_level: int
    pump_active: bool


@dataclass(frozen=True, slots=True)
class StoredReading:
    """A reading as persisted by a backend."""

    sequence_id: int
    temperature: float
    air_humidity: float
    soil_humidity: int
    light_level: int
    pump_active: bool
    captured_at: datetime

    @classmethod
    def from_reading(
        cls, reading: Reading, sequence_id: int, captured_at: datetime
    ) -> "StoredReading":
        return cls(
            sequence_id=sequence_id,
            temperature=reading.temperature,
            air_humidity=reading.air_humidity,
            soil_humidity=reading.soil_humidity,
            light_level=reading.light_level,
            pump_active=reading.pump_active,
            captured_at=captured_at,
        )

    def as_reading(self) -> Reading:
        return Reading(
            temperature=self.temperature,
            air_humidity=self.air_humidity,
            soil_humidity=self.soil_humidity,
            light_level=self.light_level,
            pump_active=self.pump_active,
        )
