"""Resolve the current civil time from an external authority with a local fallback."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Callable, Optional

import httpx

from errors import TimeSourceError
from settings import get_settings

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TimeResolver:
    """Current time for a named civil timezone.

    ``now()`` asks the external time service first and falls back to the
    local clock shifted by a fixed UTC offset. It never raises.
    """

    def __init__(
        self,
        url: str,
        fallback_offset: timedelta,
        timeout: float = 5.0,
        timezone_name: str = "America/Sao_Paulo",
        client: Optional[httpx.Client] = None,
        local_clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.url = url.format(timezone=timezone_name)
        self.timezone_name = timezone_name
        self.fallback_tz = timezone(fallback_offset)
        self._client = client or httpx.Client(timeout=timeout)
        self._local_clock = local_clock

    def now(self) -> datetime:
        try:
            resolved = self.fetch_remote()
        except TimeSourceError as exc:
            fallback = self.fallback_now()
            logger.warning(
                "External time source failed; using local clock with fixed offset",
                extra={"source": "fallback", "reason": str(exc)},
            )
            return fallback
        logger.debug("Resolved time from external source", extra={"source": "remote"})
        return resolved

    def fallback_now(self) -> datetime:
        """Local clock converted to UTC, then shifted to the fixed fallback offset."""

        local = self._local_clock()
        if local.tzinfo is None:
            local = local.replace(tzinfo=timezone.utc)
        return local.astimezone(timezone.utc).astimezone(self.fallback_tz)

    def fetch_remote(self) -> datetime:
        try:
            response = self._client.get(self.url)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise TimeSourceError(f"Time service request failed: {exc}") from exc
        except ValueError as exc:
            raise TimeSourceError("Time service returned a non-JSON body") from exc
        return self._parse_payload(payload)

    def close(self) -> None:
        self._client.close()

    @staticmethod
    def _parse_payload(payload: Any) -> datetime:
        if not isinstance(payload, dict):
            raise TimeSourceError("Time service payload is not an object")
        raw = payload.get("datetime")
        if not isinstance(raw, str) or not raw.strip():
            raise TimeSourceError("Time service payload has no datetime field")

        candidate = raw.strip()
        if candidate.endswith("Z"):
            candidate = candidate[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(candidate)
        except ValueError as exc:
            raise TimeSourceError(f"Unparseable datetime {raw!r}") from exc

        if parsed.tzinfo is None:
            raise TimeSourceError(f"Datetime {raw!r} carries no UTC offset")
        return parsed


@lru_cache
def build_default_resolver() -> TimeResolver:
    settings = get_settings()
    return TimeResolver(
        url=settings.time_source_url,
        fallback_offset=timedelta(hours=settings.fallback_utc_offset_hours),
        timeout=settings.time_source_timeout,
        timezone_name=settings.time_zone,
    )
