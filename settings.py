from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


_THINGSPEAK_URL_ENV = "THINGSPEAK_BASE_URL"
_THINGSPEAK_CHANNEL_ENV = "THINGSPEAK_CHANNEL_ID"
_THINGSPEAK_KEY_ENV = "THINGSPEAK_READ_KEY"
_THINGSPEAK_TIMEOUT_ENV = "THINGSPEAK_TIMEOUT"
_TIMEZONE_ENV = "STATION_TIMEZONE"
_TEMPERATURE_PROFILE_ENV = "STATION_TEMPERATURE_PROFILE"
_COMPARE_DAYS_ENV = "COMPARE_DAYS"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    thingspeak_base_url: str
    thingspeak_channel_id: Optional[str]
    thingspeak_read_key: Optional[str]
    thingspeak_timeout: float
    timezone: str
    temperature_profile: str
    compare_days: int
    log_level: str

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


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


def _read_timezone(default: str) -> str:
    candidate = _read_str_env(_TIMEZONE_ENV, default)
    try:
        ZoneInfo(candidate)
    except (ZoneInfoNotFoundError, ValueError):
        return default
    return candidate


def _read_temperature_profile(default: str) -> str:
    candidate = _read_str_env(_TEMPERATURE_PROFILE_ENV, default).lower()
    return candidate if candidate in {"exterior", "interior"} else default


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
        thingspeak_base_url=_read_str_env(_THINGSPEAK_URL_ENV, "https://api.thingspeak.com"),
        thingspeak_channel_id=_read_optional_env(_THINGSPEAK_CHANNEL_ENV, None),
        thingspeak_read_key=_read_optional_env(_THINGSPEAK_KEY_ENV, None),
        thingspeak_timeout=_read_positive_float(_THINGSPEAK_TIMEOUT_ENV, 30.0),
        timezone=_read_timezone("UTC"),
        temperature_profile=_read_temperature_profile("exterior"),
        compare_days=_read_positive_int(_COMPARE_DAYS_ENV, 1),
        log_level=_read_log_level("INFO"),
    )
