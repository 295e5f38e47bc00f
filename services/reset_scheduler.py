"""Retention policies and the scheduler that wipes readings at each boundary."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from functools import lru_cache
from threading import Lock
from time import monotonic
from typing import Callable, Optional, Protocol

from datastore.gateway import StorageGateway, build_default_gateway
from errors import BackendOperationError, ResetError
from models.records import BackendKind, PolicyMode, ResetMarker
from services.time_resolver import build_default_resolver
from settings import get_settings

logger = logging.getLogger(__name__)


class Clock(Protocol):
    def now(self) -> datetime: ...


class CalendarDayPolicy:
    """Wipe once per civil day, on the first tick that sees a different date."""

    mode = PolicyMode.calendar_day

    def marker_for(self, now: datetime) -> date:
        return now.date()

    def is_due(self, marker: ResetMarker, now: datetime, elapsed: timedelta) -> bool:
        return now.date() != marker

    def next_boundary(self, marker: ResetMarker, now: datetime, elapsed: timedelta) -> datetime:
        return datetime.combine(marker + timedelta(days=1), time.min, tzinfo=now.tzinfo)


class RollingWindowPolicy:
    """Wipe when a fixed window has elapsed since the previous wipe.

    ``elapsed`` comes from a monotonic counter sampled with the marker. The
    resolved instants are not subtracted; the marker instant is for display.
    """

    mode = PolicyMode.rolling_window

    def __init__(self, window: timedelta = timedelta(hours=24)) -> None:
        if window <= timedelta(0):
            raise ValueError("Rolling window must be positive.")
        self.window = window

    def marker_for(self, now: datetime) -> datetime:
        return now

    def is_due(self, marker: ResetMarker, now: datetime, elapsed: timedelta) -> bool:
        return elapsed >= self.window

    def next_boundary(self, marker: ResetMarker, now: datetime, elapsed: timedelta) -> datetime:
        return now + (self.window - elapsed)


RetentionPolicy = CalendarDayPolicy | RollingWindowPolicy


@dataclass(frozen=True)
class CheckOutcome:
    """What a single tick decided."""

    wiped: bool
    deleted_count: int = 0
    initialized: bool = False
    error: Optional[str] = None


@dataclass(frozen=True)
class ResetResult:
    deleted_count: int
    next_boundary_at: datetime
    seconds_until_next_boundary: float


@dataclass(frozen=True)
class ResetStatus:
    last_reset_marker: Optional[ResetMarker]
    last_wipe_at: Optional[datetime]
    policy_mode: PolicyMode
    backend: BackendKind
    current_time: datetime
    next_boundary_at: Optional[datetime]
    seconds_until_next_boundary: Optional[float]
    seconds_overdue: Optional[float]
    seconds_since_last_wipe: Optional[float]


def _seconds_until(boundary: datetime, now: datetime) -> float:
    return max((boundary - now).total_seconds(), 0.0)


def _seconds_overdue(boundary: datetime, now: datetime) -> float:
    return max((now - boundary).total_seconds(), 0.0)


class ResetScheduler:
    """Decides at each tick whether a retention boundary was crossed.

    Time is resolved before the critical section is entered so a slow time
    service never holds the lock. Inside it, the decision, the wipe and the
    marker update run as one unit: overlapping ticks at the same boundary
    produce a single wipe. The marker only moves after a wipe succeeds.

    ``elapsed_clock`` returns seconds from an arbitrary origin and must never
    go backwards; it measures durations since the marker was set.
    """

    def __init__(
        self,
        gateway: StorageGateway,
        clock: Clock,
        policy: RetentionPolicy,
        marker: Optional[ResetMarker] = None,
        elapsed_clock: Callable[[], float] = monotonic,
    ) -> None:
        self.gateway = gateway
        self.clock = clock
        self.policy = policy
        self._elapsed_clock = elapsed_clock
        self._marker = marker
        self._marker_ticks: Optional[float] = elapsed_clock() if marker is not None else None
        self._last_wipe_at: Optional[datetime] = None
        self._last_wipe_ticks: Optional[float] = None
        self._lock = Lock()

    @property
    def marker(self) -> Optional[ResetMarker]:
        with self._lock:
            return self._marker

    def check_and_reset(self) -> CheckOutcome:
        now = self.clock.now()
        ticks = self._elapsed_clock()
        with self._lock:
            if self._marker is None:
                self._marker = self.policy.marker_for(now)
                self._marker_ticks = ticks
                logger.info(
                    "Reset marker initialised; first check never wipes",
                    extra={"policy": self.policy.mode.value, "marker": self._marker},
                )
                return CheckOutcome(wiped=False, initialized=True)

            if not self.policy.is_due(self._marker, now, self._elapsed_since_marker(ticks)):
                return CheckOutcome(wiped=False)

            try:
                deleted = self._wipe()
            except ResetError as exc:
                logger.exception(
                    "Scheduled wipe failed; retrying on next tick",
                    extra={"policy": self.policy.mode.value, "marker": self._marker},
                )
                return CheckOutcome(wiped=False, error=str(exc))

            self._advance(now, ticks)
            logger.info(
                "Retention boundary crossed; readings wiped",
                extra={
                    "policy": self.policy.mode.value,
                    "marker": self._marker,
                    "deleted_count": deleted,
                },
            )
            return CheckOutcome(wiped=True, deleted_count=deleted)

    def force_reset(self) -> ResetResult:
        """Wipe unconditionally and restart the retention window from now."""

        now = self.clock.now()
        ticks = self._elapsed_clock()
        with self._lock:
            deleted = self.gateway.wipe_all()
            self._advance(now, ticks)
            boundary = self.policy.next_boundary(self._marker, now, timedelta(0))
        logger.info(
            "Manual reset performed",
            extra={"policy": self.policy.mode.value, "deleted_count": deleted},
        )
        return ResetResult(
            deleted_count=deleted,
            next_boundary_at=boundary,
            seconds_until_next_boundary=_seconds_until(boundary, now),
        )

    def status(self) -> ResetStatus:
        now = self.clock.now()
        ticks = self._elapsed_clock()
        with self._lock:
            marker = self._marker
            elapsed = self._elapsed_since_marker(ticks)
            last_wipe_at = self._last_wipe_at
            last_wipe_ticks = self._last_wipe_ticks

        boundary = self.policy.next_boundary(marker, now, elapsed) if marker is not None else None
        return ResetStatus(
            last_reset_marker=marker,
            last_wipe_at=last_wipe_at,
            policy_mode=self.policy.mode,
            backend=self.gateway.active_backend(),
            current_time=now,
            next_boundary_at=boundary,
            seconds_until_next_boundary=(
                _seconds_until(boundary, now) if boundary is not None else None
            ),
            seconds_overdue=_seconds_overdue(boundary, now) if boundary is not None else None,
            seconds_since_last_wipe=(
                ticks - last_wipe_ticks if last_wipe_ticks is not None else None
            ),
        )

    def _wipe(self) -> int:
        try:
            return self.gateway.wipe_all()
        except BackendOperationError as exc:
            raise ResetError(f"Scheduled wipe failed: {exc}") from exc

    def _elapsed_since_marker(self, ticks: float) -> timedelta:
        if self._marker_ticks is None:
            return timedelta(0)
        return timedelta(seconds=ticks - self._marker_ticks)

    def _advance(self, now: datetime, ticks: float) -> None:
        self._marker = self.policy.marker_for(now)
        self._marker_ticks = ticks
        self._last_wipe_at = now
        self._last_wipe_ticks = ticks


def build_policy(mode: str, window_hours: float = 24.0) -> RetentionPolicy:
    if PolicyMode(mode) is PolicyMode.rolling_window:
        return RollingWindowPolicy(timedelta(hours=window_hours))
    return CalendarDayPolicy()


@lru_cache
def build_default_scheduler() -> ResetScheduler:
    settings = get_settings()
    return ResetScheduler(
        gateway=build_default_gateway(),
        clock=build_default_resolver(),
        policy=build_policy(settings.reset_policy, settings.reset_window_hours),
    )
