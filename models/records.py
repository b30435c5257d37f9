"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple, Union


class Channel(str, Enum):
    """Physical quantities reported by the station."""

    temperature = "temperature"
    humidity = "humidity"
    pressure = "pressure"
    aux_temperature = "aux_temperature"


class PressureLevel(str, Enum):
    high = "high"
    normal = "normal"
    low = "low"
    unknown = "unknown"


class PressureTrend(str, Enum):
    strong_up = "strong_up"
    up = "up"
    stable = "stable"
    down = "down"
    strong_down = "strong_down"
    unknown = "unknown"


class WeatherIcon(str, Enum):
    sun = "sun"
    partly = "partly"
    cloud = "cloud"
    rain = "rain"
    snow = "snow"
    storm = "storm"
    ice = "ice"


@dataclass(frozen=True)
class Reading:
    """One poll of the station: a timestamp plus raw channel values."""

    timestamp: datetime
    fields: Mapping[Channel, Optional[float]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def value(self, channel: Channel) -> Optional[float]:
        return self.fields.get(channel)


@dataclass(frozen=True, slots=True)
class Point:
    """A validated, de-spiked observation for a single channel."""

    x: datetime
    y: float


@dataclass(frozen=True, slots=True)
class HourPoint:
    """A point re-keyed to its hour of day, in ``[0, 24)``."""

    x: float
    y: float


@dataclass(frozen=True)
class DayGroup:
    offset: int
    label: str
    start: datetime
    end: datetime
    points: Tuple[HourPoint, ...] = ()


@dataclass(frozen=True)
class FeatureBundle:
    """Inputs of the weather classifier, built fresh for every evaluation.

    Deltas and current values are ``None`` when the lookback window holds no
    usable sample; they are never replaced by zero.
    """

    now: datetime
    p_now: Optional[float]
    t_now: Optional[float]
    h_now: Optional[float]
    dp1h: Optional[float]
    dp3h: Optional[float]
    dp6h: Optional[float]
    dh3h: Optional[float]
    dh6h: Optional[float]
    hour: int
    day_of_year: int
    hour_sin: float
    hour_cos: float
    doy_sin: float
    doy_cos: float
    sample_count: int
    age_hours: float = 0.0


@dataclass(frozen=True)
class Classification:
    pressure_level: PressureLevel
    pressure_trend: PressureTrend
    instability: float
    icon: WeatherIcon
    summary: str
    detail: str
    ice_risk: bool = False


@dataclass(frozen=True)
class SeriesSummary:
    """Min/max/mean of a series, keeping the points where extremes occur."""

    count: int = 0
    min_point: Optional[Union[Point, HourPoint]] = None
    max_point: Optional[Union[Point, HourPoint]] = None
    mean: Optional[float] = None
