"""Simple aggregates over stored readings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from models.records import StoredReading


@dataclass
class ReadingSummary:
    """Computed statistics for a window of readings."""

    row_count: int = 0
    min_temperature: Optional[float] = None
    max_temperature: Optional[float] = None
    mean_temperature: Optional[float] = None
    min_air_humidity: Optional[float] = None
    max_air_humidity: Optional[float] = None
    mean_air_humidity: Optional[float] = None
    pump_active_count: int = 0


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def aggregate(self, readings: Iterable[StoredReading]) -> ReadingSummary:
        summary = ReadingSummary()
        temperature_total = 0.0
        humidity_total = 0.0

        for reading in readings:
            summary.row_count += 1
            temperature_total += reading.temperature
            humidity_total += reading.air_humidity

            if summary.min_temperature is None or reading.temperature < summary.min_temperature:
                summary.min_temperature = reading.temperature
            if summary.max_temperature is None or reading.temperature > summary.max_temperature:
                summary.max_temperature = reading.temperature
            if summary.min_air_humidity is None or reading.air_humidity < summary.min_air_humidity:
                summary.min_air_humidity = reading.air_humidity
            if summary.max_air_humidity is None or reading.air_humidity > summary.max_air_humidity:
                summary.max_air_humidity = reading.air_humidity
            if reading.pump_active:
                summary.pump_active_count += 1

        if summary.row_count:
            summary.mean_temperature = temperature_total / summary.row_count
            summary.mean_air_humidity = humidity_total / summary.row_count

        return summary
