"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from models.records import BackendKind, PolicyMode, StoredReading


class ReadingOut(BaseModel):
    """A stored reading as returned to clients."""

    sequence_id: int
    temperature: float
    air_humidity: float
    soil_humidity: int
    light_level: int
    pump_active: bool
    captured_at: datetime

    @classmethod
    def from_stored(cls, reading: StoredReading) -> "ReadingOut":
        return cls(
            sequence_id=reading.sequence_id,
            temperature=reading.temperature,
            air_humidity=reading.air_humidity,
            soil_humidity=reading.soil_humidity,
            light_level=reading.light_level,
            pump_active=reading.pump_active,
            captured_at=reading.captured_at,
        )


class InsertResponse(BaseModel):
    """Immediate response payload after storing a reading."""

    reading: ReadingOut
    backend: BackendKind


class ReadingListResponse(BaseModel):
    count: int = Field(..., ge=0)
    readings: List[ReadingOut] = Field(default_factory=list)
    backend: BackendKind
    last_reset_marker: Optional[Union[datetime, date]] = None


class LatestReadingResponse(BaseModel):
    reading: Optional[ReadingOut] = None
    backend: BackendKind


class ReadingAggregates(BaseModel):
    """Aggregates over the most recent readings."""

    row_count: int = Field(..., ge=0)
    min_temperature: Optional[float] = None
    max_temperature: Optional[float] = None
    mean_temperature: Optional[float] = None
    min_air_humidity: Optional[float] = None
    max_air_humidity: Optional[float] = None
    mean_air_humidity: Optional[float] = None
    pump_active_count: int = Field(default=0, ge=0)


class StatsResponse(BaseModel):
    total_records: int = Field(..., ge=0)
    first_record_at: Optional[datetime] = None
    last_record_at: Optional[datetime] = None
    backend: BackendKind
    aggregates: ReadingAggregates
    last_reset_marker: Optional[Union[datetime, date]] = None
    policy: PolicyMode


class ResetResponse(BaseModel):
    deleted_count: int = Field(..., ge=0)
    next_boundary_at: datetime
    seconds_until_next_boundary: float = Field(
        ..., ge=0, description="Seconds until the next scheduled wipe is due."
    )


class ResetStatusResponse(BaseModel):
    """Retention state of the reset scheduler."""

    last_reset_marker: Optional[Union[datetime, date]] = None
    last_wipe_at: Optional[datetime] = None
    backend: BackendKind
    policy: PolicyMode
    current_time: datetime
    timezone: str
    next_boundary_at: Optional[datetime] = None
    seconds_until_next_boundary: Optional[float] = None
    seconds_overdue: Optional[float] = None


class ServiceInfo(BaseModel):
    status: str = "ok"
    backend: BackendKind
    policy: PolicyMode
    last_reset_marker: Optional[Union[datetime, date]] = None
    timezone: str
