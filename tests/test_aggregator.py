"""Unit tests for the aggregation logic."""

from __future__ import annotations

from datetime import datetime, timezone

from models.records import StoredReading
from services.aggregator import Aggregator


def _reading(sequence_id: int, temperature: float, air_humidity: float, pump_active: bool) -> StoredReading:
    """Helper to build deterministic stored readings."""

    return StoredReading(
        sequence_id=sequence_id,
        temperature=temperature,
        air_humidity=air_humidity,
        soil_humidity=500,
        light_level=1000,
        pump_active=pump_active,
        captured_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


def test_aggregate_empty_iterable_returns_default_summary() -> None:
    aggregator = Aggregator()

    summary = aggregator.aggregate([])

    assert summary.row_count == 0
    assert summary.min_temperature is None
    assert summary.max_temperature is None
    assert summary.mean_temperature is None
    assert summary.mean_air_humidity is None
    assert summary.pump_active_count == 0


def test_aggregate_computes_statistics() -> None:
    aggregator = Aggregator()
    readings = [
        _reading(1, 10.0, 40.0, False),
        _reading(2, 30.0, 80.0, True),
        _reading(3, 20.0, 60.0, True),
    ]

    summary = aggregator.aggregate(readings)

    assert summary.row_count == 3
    assert summary.min_temperature == 10.0
    assert summary.max_temperature == 30.0
    assert summary.mean_temperature == 20.0
    assert summary.min_air_humidity == 40.0
    assert summary.max_air_humidity == 80.0
    assert summary.mean_air_humidity == 60.0
    assert summary.pump_active_count == 2
