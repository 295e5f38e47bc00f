"""Ingestion orchestration: validate, timestamp, and store sensor readings."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from threading import Lock
from typing import Any, Callable, Mapping, Optional

from datastore.gateway import StorageGateway, build_default_gateway
from errors import ValidationError
from models.records import BackendKind, Reading, StoredReading
from services.aggregator import Aggregator, ReadingSummary
from services.time_resolver import build_default_resolver
from services.validator import ReadingValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InsertResult:
    reading: StoredReading
    backend: BackendKind


@dataclass(frozen=True)
class ListResult:
    count: int
    readings: list[StoredReading]
    backend: BackendKind


@dataclass(frozen=True)
class ReadingStats:
    total_records: int
    first_record_at: Optional[datetime]
    last_record_at: Optional[datetime]
    backend: BackendKind
    summary: ReadingSummary


class IngestionService:
    """Coordinates validation, timestamping and storage of readings."""

    def __init__(
        self,
        gateway: StorageGateway,
        clock: Callable[[], datetime],
        validator: Optional[ReadingValidator] = None,
        aggregator: Optional[Aggregator] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.gateway = gateway
        self.clock = clock
        self.validator = validator or ReadingValidator()
        self.aggregator = aggregator or Aggregator()
        self._rng = rng or random.Random()
        self._last_captured_at: Optional[datetime] = None
        self._write_lock = Lock()

    def submit(self, payload: Mapping[str, Any]) -> InsertResult:
        """Validate a raw submission and store it.

        Raises ValidationError for bad payloads and BackendOperationError when
        the active store rejects the write.
        """
        try:
            reading = self.validator.validate(payload)
        except ValidationError as exc:
            logger.info(
                "Rejected reading",
                extra={
                    "missing_fields": exc.missing_fields or None,
                    "invalid_fields": list(exc.invalid_fields) or None,
                },
            )
            raise
        return self.store(reading)

    def submit_test_reading(self) -> InsertResult:
        """Store a plausible synthetic reading, for wiring checks without a device."""
        reading = Reading(
            temperature=round(self._rng.uniform(20.0, 35.0), 2),
            air_humidity=round(self._rng.uniform(40.0, 90.0), 2),
            soil_humidity=self._rng.randrange(0, 1023),
            light_level=self._rng.randrange(0, 4095),
            pump_active=self._rng.random() > 0.5,
        )
        return self.store(reading)

    def store(self, reading: Reading) -> InsertResult:
        # Stamp and insert under one lock so capture times never go backwards
        # in insertion order, even if the host clock steps back.
        with self._write_lock:
            captured_at = self.clock()
            if self._last_captured_at is not None and captured_at < self._last_captured_at:
                captured_at = self._last_captured_at
            stored = self.gateway.insert(reading, captured_at)
            self._last_captured_at = captured_at
        return InsertResult(reading=stored, backend=self.gateway.active_backend())

    def list_recent(self, limit: int) -> ListResult:
        readings = self.gateway.list_recent(limit)
        return ListResult(
            count=len(readings),
            readings=readings,
            backend=self.gateway.active_backend(),
        )

    def latest(self) -> Optional[StoredReading]:
        return self.gateway.latest()

    def stats(self, window: int) -> ReadingStats:
        latest = self.gateway.latest()
        oldest = self.gateway.oldest()
        return ReadingStats(
            total_records=self.gateway.count(),
            first_record_at=oldest.captured_at if oldest else None,
            last_record_at=latest.captured_at if latest else None,
            backend=self.gateway.active_backend(),
            summary=self.aggregator.aggregate(self.gateway.list_recent(window)),
        )


@lru_cache
def build_default_ingestion() -> IngestionService:
    """Factory that wires ingestion with the shared gateway and local clock."""
    resolver = build_default_resolver()
    return IngestionService(gateway=build_default_gateway(), clock=resolver.fallback_now)
