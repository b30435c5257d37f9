"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.records import Channel, PressureLevel, PressureTrend, Reading, WeatherIcon
from services.windows import DEFAULT_RANGE


class _FromAttributes(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class ReadingIn(BaseModel):
    """One raw station poll; missing channels are allowed."""

    timestamp: datetime
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    pressure: Optional[float] = None
    aux_temperature: Optional[float] = None

    def to_reading(self) -> Reading:
        timestamp = self.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return Reading(
            timestamp=timestamp,
            fields={channel: getattr(self, channel.value) for channel in Channel},
        )


class EvaluateRequest(BaseModel):
    readings: List[ReadingIn] = Field(default_factory=list)
    as_of: Optional[datetime] = Field(
        default=None,
        description="Evaluation instant; naive values are read in the station timezone.",
    )
    range_key: str = Field(default=DEFAULT_RANGE, alias="range")
    compare_days: Optional[int] = Field(default=None, ge=1, le=7)

    model_config = ConfigDict(populate_by_name=True)


class PointOut(_FromAttributes):
    x: datetime
    y: float


class HourPointOut(_FromAttributes):
    x: float = Field(..., ge=0, lt=24, description="Hour of day.")
    y: float


class SeriesSummaryOut(_FromAttributes):
    count: int = Field(..., ge=0)
    min_point: Optional[PointOut] = None
    max_point: Optional[PointOut] = None
    mean: Optional[float] = None


class DayGroupOut(_FromAttributes):
    offset: int = Field(..., ge=0)
    label: str
    start: datetime
    end: datetime
    points: List[HourPointOut] = Field(default_factory=list)


class DaySummaryOut(_FromAttributes):
    count: int = Field(..., ge=0)
    min_point: Optional[HourPointOut] = None
    max_point: Optional[HourPointOut] = None
    mean: Optional[float] = None


class FeaturesOut(_FromAttributes):
    now: datetime
    p_now: Optional[float] = None
    t_now: Optional[float] = None
    h_now: Optional[float] = None
    dp1h: Optional[float] = None
    dp3h: Optional[float] = None
    dp6h: Optional[float] = None
    dh3h: Optional[float] = None
    dh6h: Optional[float] = None
    hour: int
    day_of_year: int
    hour_sin: float
    hour_cos: float
    doy_sin: float
    doy_cos: float
    sample_count: int
    age_hours: float


class ClassificationOut(_FromAttributes):
    pressure_level: PressureLevel
    pressure_trend: PressureTrend
    instability: float
    icon: WeatherIcon
    summary: str
    detail: str
    ice_risk: bool


class LatestReadingOut(_FromAttributes):
    timestamp: datetime
    fields: Dict[Channel, Optional[float]] = Field(default_factory=dict)


class EvaluationResult(_FromAttributes):
    """Everything the presentation layer needs for one evaluation."""

    as_of: datetime
    range_key: str
    stale: bool = Field(..., description="True when the newest reading is old.")
    total_readings: int = Field(..., ge=0)
    latest: Optional[LatestReadingOut] = None
    features: Optional[FeaturesOut] = None
    classification: Optional[ClassificationOut] = None
    summaries: Dict[Channel, SeriesSummaryOut] = Field(default_factory=dict)
    series: Dict[Channel, List[PointOut]] = Field(default_factory=dict)
    day_groups: Dict[Channel, List[DayGroupOut]] = Field(default_factory=dict)
    day_summaries: Dict[Channel, Dict[int, DaySummaryOut]] = Field(default_factory=dict)


class SnapshotOut(_FromAttributes):
    range_key: str
    evaluated_at: datetime
    processing_ms: int = Field(
        ..., description="Duration in milliseconds of the fetch and evaluation."
    )
    result: EvaluationResult


class RefreshResponse(BaseModel):
    status: str = "scheduled"
    range_key: str
