"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from app.schemas import (
    InsertResponse,
    LatestReadingResponse,
    ReadingAggregates,
    ReadingListResponse,
    ReadingOut,
    ResetResponse,
    ResetStatusResponse,
    ServiceInfo,
    StatsResponse,
)
from errors import BackendOperationError, ValidationError
from services.ingestion import IngestionService, InsertResult, build_default_ingestion
from services.reset_scheduler import ResetScheduler, build_default_scheduler
from settings import Settings, get_settings

router = APIRouter()


def get_ingestion() -> IngestionService:
    return build_default_ingestion()


def get_scheduler() -> ResetScheduler:
    return build_default_scheduler()


def _backend_error(exc: BackendOperationError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=str(exc),
    )


def _insert_response(result: InsertResult) -> InsertResponse:
    return InsertResponse(reading=ReadingOut.from_stored(result.reading), backend=result.backend)


@router.post(
    "/api/sensor-data",
    status_code=status.HTTP_201_CREATED,
    response_model=InsertResponse,
    summary="Store one reading submitted by the sensor device.",
)
def submit_reading(
    payload: Dict[str, Any] = Body(..., description="Raw reading fields from the device."),
    ingestion: IngestionService = Depends(get_ingestion),
) -> InsertResponse:
    try:
        result = ingestion.submit(payload)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": str(exc),
                "missing_fields": exc.missing_fields,
                "invalid_fields": exc.invalid_fields,
            },
        ) from exc
    except BackendOperationError as exc:
        raise _backend_error(exc) from exc
    return _insert_response(result)


@router.get(
    "/api/sensor-data",
    response_model=ReadingListResponse,
    summary="List the most recent readings, newest first.",
)
def list_readings(
    limit: int | None = Query(default=None, ge=1, le=10_000),
    ingestion: IngestionService = Depends(get_ingestion),
    scheduler: ResetScheduler = Depends(get_scheduler),
    settings: Settings = Depends(get_settings),
) -> ReadingListResponse:
    try:
        result = ingestion.list_recent(limit or settings.recent_readings_limit)
    except BackendOperationError as exc:
        raise _backend_error(exc) from exc
    return ReadingListResponse(
        count=result.count,
        readings=[ReadingOut.from_stored(reading) for reading in result.readings],
        backend=result.backend,
        last_reset_marker=scheduler.marker,
    )


@router.get(
    "/api/latest-data",
    response_model=LatestReadingResponse,
    summary="Fetch the most recent reading.",
)
def latest_reading(
    ingestion: IngestionService = Depends(get_ingestion),
) -> LatestReadingResponse:
    try:
        reading = ingestion.latest()
    except BackendOperationError as exc:
        raise _backend_error(exc) from exc
    return LatestReadingResponse(
        reading=ReadingOut.from_stored(reading) if reading else None,
        backend=ingestion.gateway.active_backend(),
    )


@router.post(
    "/api/test-data",
    status_code=status.HTTP_201_CREATED,
    response_model=InsertResponse,
    summary="Store a synthetic reading.",
)
def create_test_reading(
    ingestion: IngestionService = Depends(get_ingestion),
) -> InsertResponse:
    try:
        result = ingestion.submit_test_reading()
    except BackendOperationError as exc:
        raise _backend_error(exc) from exc
    return _insert_response(result)


@router.get(
    "/api/stats",
    response_model=StatsResponse,
    summary="Record counts and simple aggregates over recent readings.",
)
def reading_stats(
    ingestion: IngestionService = Depends(get_ingestion),
    scheduler: ResetScheduler = Depends(get_scheduler),
    settings: Settings = Depends(get_settings),
) -> StatsResponse:
    try:
        stats = ingestion.stats(settings.recent_readings_limit)
    except BackendOperationError as exc:
        raise _backend_error(exc) from exc
    summary = stats.summary
    return StatsResponse(
        total_records=stats.total_records,
        first_record_at=stats.first_record_at,
        last_record_at=stats.last_record_at,
        backend=stats.backend,
        aggregates=ReadingAggregates(
            row_count=summary.row_count,
            min_temperature=summary.min_temperature,
            max_temperature=summary.max_temperature,
            mean_temperature=summary.mean_temperature,
            min_air_humidity=summary.min_air_humidity,
            max_air_humidity=summary.max_air_humidity,
            mean_air_humidity=summary.mean_air_humidity,
            pump_active_count=summary.pump_active_count,
        ),
        last_reset_marker=scheduler.marker,
        policy=scheduler.policy.mode,
    )


@router.get(
    "/api/reset-info",
    response_model=ResetStatusResponse,
    summary="Show the retention marker and when the next wipe is due.",
)
def reset_info(
    scheduler: ResetScheduler = Depends(get_scheduler),
    settings: Settings = Depends(get_settings),
) -> ResetStatusResponse:
    current = scheduler.status()
    return ResetStatusResponse(
        last_reset_marker=current.last_reset_marker,
        last_wipe_at=current.last_wipe_at,
        backend=current.backend,
        policy=current.policy_mode,
        current_time=current.current_time,
        timezone=settings.time_zone,
        next_boundary_at=current.next_boundary_at,
        seconds_until_next_boundary=current.seconds_until_next_boundary,
        seconds_overdue=current.seconds_overdue,
    )


@router.post(
    "/api/force-reset",
    response_model=ResetResponse,
    summary="Wipe all readings now and restart the retention window.",
)
def force_reset(
    scheduler: ResetScheduler = Depends(get_scheduler),
) -> ResetResponse:
    try:
        result = scheduler.force_reset()
    except BackendOperationError as exc:
        raise _backend_error(exc) from exc
    return ResetResponse(
        deleted_count=result.deleted_count,
        next_boundary_at=result.next_boundary_at,
        seconds_until_next_boundary=result.seconds_until_next_boundary,
    )


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    response_model=ServiceInfo,
    summary="Service overview: active backend and retention policy.",
)
async def root(
    scheduler: ResetScheduler = Depends(get_scheduler),
    settings: Settings = Depends(get_settings),
) -> ServiceInfo:
    return ServiceInfo(
        backend=scheduler.gateway.active_backend(),
        policy=scheduler.policy.mode,
        last_reset_marker=scheduler.marker,
        timezone=settings.time_zone,
    )
