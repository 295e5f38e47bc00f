from __future__ import annotations

import random
from datetime import date, datetime, timedelta, timezone
from typing import Iterator

import pytest

from datastore.gateway import StorageGateway
from datastore.memory_store import InMemoryReadingStore
from errors import ValidationError
from models.records import BackendKind
from services.ingestion import IngestionService
from services.reset_scheduler import CalendarDayPolicy, ResetScheduler

BRT = timezone(timedelta(hours=-3))
T0 = datetime(2024, 5, 1, 8, 0, tzinfo=BRT)

PAYLOAD = {
    "temperature": 25.5,
    "airHumidity": 60,
    "soilHumidity": 512,
    "lightLevel": 2048,
    "pumpActive": True,
}


class SteppingClock:
    def __init__(self, instants: list[datetime]) -> None:
        self._instants: Iterator[datetime] = iter(instants)
        self.last = instants[0]

    def __call__(self) -> datetime:
        self.last = next(self._instants, self.last)
        return self.last

    def now(self) -> datetime:
        return self.last


@pytest.fixture
def gateway() -> StorageGateway:
    return StorageGateway(InMemoryReadingStore(), BackendKind.fallback)


def test_submit_then_force_reset_end_to_end(gateway: StorageGateway) -> None:
    clock = SteppingClock([T0])
    service = IngestionService(gateway=gateway, clock=clock)
    scheduler = ResetScheduler(gateway, clock, CalendarDayPolicy())
    before = gateway.count()

    result = service.submit(PAYLOAD)

    stored = result.reading
    assert result.backend is BackendKind.fallback
    assert (stored.temperature, stored.air_humidity, stored.soil_humidity) == (25.5, 60.0, 512)
    assert (stored.light_level, stored.pump_active) == (2048, True)
    assert stored.captured_at is not None
    assert gateway.count() == before + 1

    reset = scheduler.force_reset()

    assert reset.deleted_count == 1
    assert gateway.count() == 0
    assert scheduler.marker == date(2024, 5, 1)


def test_invalid_submission_is_not_stored(gateway: StorageGateway) -> None:
    service = IngestionService(gateway=gateway, clock=SteppingClock([T0]))

    with pytest.raises(ValidationError) as excinfo:
        service.submit({"temperature": 20.0})

    assert excinfo.value.missing_fields == ["airHumidity", "soilHumidity", "lightLevel", "pumpActive"]
    assert gateway.count() == 0


def test_capture_times_never_go_backwards(gateway: StorageGateway) -> None:
    clock = SteppingClock([T0, T0 - timedelta(minutes=5), T0 + timedelta(minutes=1)])
    service = IngestionService(gateway=gateway, clock=clock)

    stamps = [service.submit(PAYLOAD).reading.captured_at for _ in range(3)]

    assert stamps == [T0, T0, T0 + timedelta(minutes=1)]


def test_list_recent_and_latest(gateway: StorageGateway) -> None:
    clock = SteppingClock([T0 + timedelta(minutes=offset) for offset in range(4)])
    service = IngestionService(gateway=gateway, clock=clock)
    for temperature in (20, 21, 22, 23):
        service.submit({**PAYLOAD, "temperature": temperature})

    listed = service.list_recent(2)

    assert listed.count == 2
    assert [reading.temperature for reading in listed.readings] == [23.0, 22.0]
    assert listed.backend is BackendKind.fallback
    latest = service.latest()
    assert latest is not None and latest.temperature == 23.0


def test_synthetic_reading_is_plausible(gateway: StorageGateway) -> None:
    service = IngestionService(gateway=gateway, clock=SteppingClock([T0]), rng=random.Random(7))

    stored = service.submit_test_reading().reading

    assert 20.0 <= stored.temperature <= 35.0
    assert 40.0 <= stored.air_humidity <= 90.0
    assert 0 <= stored.soil_humidity < 1023
    assert 0 <= stored.light_level < 4095
    assert isinstance(stored.pump_active, bool)
    assert gateway.count() == 1


def test_stats_reports_bounds_and_aggregates(gateway: StorageGateway) -> None:
    clock = SteppingClock([T0, T0 + timedelta(hours=1), T0 + timedelta(hours=2)])
    service = IngestionService(gateway=gateway, clock=clock)
    for temperature, pump in ((18.0, False), (24.0, True), (30.0, True)):
        service.submit({**PAYLOAD, "temperature": temperature, "pumpActive": pump})

    stats = service.stats(window=100)

    assert stats.total_records == 3
    assert stats.first_record_at == T0
    assert stats.last_record_at == T0 + timedelta(hours=2)
    assert stats.summary.mean_temperature == 24.0
    assert stats.summary.pump_active_count == 2


def test_stats_on_empty_store(gateway: StorageGateway) -> None:
    stats = IngestionService(gateway=gateway, clock=SteppingClock([T0])).stats(window=10)

    assert stats.total_records == 0
    assert stats.first_record_at is None
    assert stats.last_record_at is None
    assert stats.summary.row_count == 0
