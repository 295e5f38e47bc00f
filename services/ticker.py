"""Redundant periodic tick sources that drive the reset scheduler."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Iterable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from services.reset_scheduler import ResetScheduler, build_default_scheduler
from settings import get_settings

logger = logging.getLogger(__name__)

STARTUP_JOB_ID = "reset_check_startup"


class ResetTicker:
    """Feeds ``check_and_reset`` from several independent interval jobs.

    Each cadence is its own job so one misfiring timer does not stop the
    others. Overlapping ticks are safe because the scheduler serialises them.
    """

    def __init__(
        self,
        scheduler: ResetScheduler,
        intervals_minutes: Iterable[int] = (10, 60, 360),
        startup_delay: float = 5.0,
        background: Optional[BackgroundScheduler] = None,
    ) -> None:
        self.reset_scheduler = scheduler
        self.intervals_minutes = tuple(intervals_minutes)
        self.startup_delay = startup_delay
        self._background = background or BackgroundScheduler(timezone=timezone.utc)

    @property
    def job_ids(self) -> list[str]:
        return [job.id for job in self._background.get_jobs()]

    def start(self) -> None:
        for minutes in self.intervals_minutes:
            job_id = f"reset_check_{minutes}m"
            self._background.add_job(
                self.tick,
                trigger=IntervalTrigger(minutes=minutes),
                id=job_id,
                args=[job_id],
                replace_existing=True,
                coalesce=True,
                max_instances=1,
            )

        run_at = datetime.now(timezone.utc) + timedelta(seconds=self.startup_delay)
        self._background.add_job(
            self.tick,
            trigger=DateTrigger(run_date=run_at),
            id=STARTUP_JOB_ID,
            args=[STARTUP_JOB_ID],
            replace_existing=True,
        )

        self._background.start()
        logger.info(
            "Reset checks scheduled every %s minutes",
            ", ".join(str(minutes) for minutes in self.intervals_minutes),
            extra={"policy": self.reset_scheduler.policy.mode.value},
        )

    def tick(self, job_id: str = "manual") -> None:
        """Run one reset check. Never raises into the scheduler thread."""

        try:
            outcome = self.reset_scheduler.check_and_reset()
        except Exception:  # noqa: BLE001 - a failing tick must not kill its timer
            logger.exception("Reset check crashed", extra={"job_id": job_id})
            return
        if outcome.wiped:
            logger.info(
                "Reset check wiped readings",
                extra={"job_id": job_id, "deleted_count": outcome.deleted_count},
            )

    def shutdown(self) -> None:
        if self._background.running:
            self._background.shutdown(wait=False)


@lru_cache
def build_default_ticker() -> ResetTicker:
    settings = get_settings()
    return ResetTicker(
        scheduler=build_default_scheduler(),
        intervals_minutes=settings.reset_check_intervals,
        startup_delay=settings.reset_startup_delay,
    )
