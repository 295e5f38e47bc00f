from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple


_DATABASE_URL_ENV = "DATABASE_URL"
_DATABASE_TIMEOUT_ENV = "DATABASE_CONNECT_TIMEOUT"
_TIME_ZONE_ENV = "TIME_ZONE"
_TIME_SOURCE_URL_ENV = "TIME_SOURCE_URL"
_TIME_SOURCE_TIMEOUT_ENV = "TIME_SOURCE_TIMEOUT"
_FALLBACK_OFFSET_ENV = "FALLBACK_UTC_OFFSET_HOURS"
_RESET_POLICY_ENV = "RESET_POLICY"
_RESET_WINDOW_ENV = "RESET_WINDOW_HOURS"
_RESET_INTERVALS_ENV = "RESET_CHECK_INTERVALS"
_RESET_DELAY_ENV = "RESET_STARTUP_DELAY"
_RESET_TICKS_ENV = "RESET_TICKS_ENABLED"
_RECENT_LIMIT_ENV = "RECENT_READINGS_LIMIT"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_VALID_POLICIES = ("calendar_day", "rolling_window")


@dataclass(frozen=True)
class Settings:
    database_url: Optional[str]
    database_connect_timeout: float
    time_zone: str
    time_source_url: str
    time_source_timeout: float
    fallback_utc_offset_hours: float
    reset_policy: str
    reset_window_hours: float
    reset_check_intervals: Tuple[int, ...]
    reset_startup_delay: float
    reset_ticks_enabled: bool
    recent_readings_limit: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_offset_hours(default: float) -> float:
    value = os.getenv(_FALLBACK_OFFSET_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    # Civil offsets range from UTC-12 to UTC+14.
    return parsed if -12 <= parsed <= 14 else default


def _read_policy(default: str) -> str:
    value = os.getenv(_RESET_POLICY_ENV)
    if value is None:
        return default
    candidate = value.strip().lower().replace("-", "_")
    return candidate if candidate in _VALID_POLICIES else default


def _read_intervals(default: Tuple[int, ...]) -> Tuple[int, ...]:
    value = os.getenv(_RESET_INTERVALS_ENV)
    if value is None:
        return default
    intervals: list[int] = []
    for chunk in value.split(","):
        candidate = chunk.strip()
        if not candidate:
            continue
        try:
            parsed = int(candidate)
        except ValueError:
            continue
        if parsed > 0 and parsed not in intervals:
            intervals.append(parsed)
    return tuple(intervals) or default


def _read_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in {"1", "true", "yes", "on"}:
        return True
    if candidate in {"0", "false", "no", "off"}:
        return False
    return default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        database_url=_read_optional_env(_DATABASE_URL_ENV, None),
        database_connect_timeout=_read_positive_float(_DATABASE_TIMEOUT_ENV, 5.0),
        time_zone=_read_str_env(_TIME_ZONE_ENV, "America/Sao_Paulo"),
        time_source_url=_read_str_env(
            _TIME_SOURCE_URL_ENV, "https://worldtimeapi.org/api/timezone/{timezone}"
        ),
        time_source_timeout=_read_positive_float(_TIME_SOURCE_TIMEOUT_ENV, 5.0),
        fallback_utc_offset_hours=_read_offset_hours(-3.0),
        reset_policy=_read_policy("calendar_day"),
        reset_window_hours=_read_positive_float(_RESET_WINDOW_ENV, 24.0),
        reset_check_intervals=_read_intervals((10, 60, 360)),
        reset_startup_delay=_read_positive_float(_RESET_DELAY_ENV, 5.0),
        reset_ticks_enabled=_read_flag(_RESET_TICKS_ENV, True),
        recent_readings_limit=_read_positive_int(_RECENT_LIMIT_ENV, 100),
        log_level=_read_log_level("INFO"),
    )
