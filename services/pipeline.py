"""End-to-end evaluation: readings in, clean series and classification out."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Mapping, Optional, Sequence, Tuple

from models.config import PipelineConfig
from models.records import (
    Channel,
    Classification,
    DayGroup,
    FeatureBundle,
    Point,
    Reading,
    SeriesSummary,
)
from services.aggregator import Aggregator
from services.classifier import decide_weather
from services.day_grouper import group_by_day
from services.features import extract_features
from services.validation import build_series
from services.windows import DEFAULT_RANGE, range_hours, select_range


@dataclass(frozen=True)
class PipelineResult:
    as_of: datetime
    range_key: str
    series: Mapping[Channel, Tuple[Point, ...]]
    summaries: Mapping[Channel, SeriesSummary]
    features: Optional[FeatureBundle]
    classification: Optional[Classification]
    stale: bool
    latest: Optional[Reading]
    total_readings: int
    day_groups: Mapping[Channel, Tuple[DayGroup, ...]] = field(default_factory=dict)
    day_summaries: Mapping[Channel, Mapping[int, SeriesSummary]] = field(default_factory=dict)


def clean_series(
    readings: Sequence[Reading], config: PipelineConfig
) -> Dict[Channel, Tuple[Point, ...]]:
    series = {}
    for channel, channel_config in config.channels.items():
        series[channel] = build_series(
            readings, channel, channel_config.limits, channel_config.max_step
        )
    return series


def evaluate(
    readings: Sequence[Reading],
    as_of: datetime,
    config: Optional[PipelineConfig] = None,
    range_key: str = DEFAULT_RANGE,
    compare_days: Optional[int] = None,
    aggregator: Optional[Aggregator] = None,
) -> PipelineResult:
    """Run the whole cleaning and forecast pipeline for one evaluation instant.

    The display range only affects the charted series; the forecast always
    looks at the trailing lookback window ending at ``as_of``.
    """
    config = config or PipelineConfig()
    aggregator = aggregator or Aggregator()

    in_range = select_range(readings, range_hours(range_key), as_of)
    series = clean_series(in_range, config)
    summaries = {channel: aggregator.summarize(points) for channel, points in series.items()}

    recent = select_range(readings, config.windows.lookback_hours, as_of)
    anchor = max((r.timestamp for r in recent), default=None)
    features = extract_features(clean_series(recent, config), as_of, config, anchor=anchor)
    classification = decide_weather(features, config) if features is not None else None
    stale = features is not None and features.age_hours > config.windows.stale_after_hours

    day_groups: Dict[Channel, Tuple[DayGroup, ...]] = {}
    day_summaries: Dict[Channel, Dict[int, SeriesSummary]] = {}
    if compare_days is not None:
        up_to_now = [r for r in readings if r.timestamp <= as_of]
        for channel, points in clean_series(up_to_now, config).items():
            day_groups[channel] = group_by_day(points, compare_days, as_of)
            day_summaries[channel] = aggregator.summarize_days(day_groups[channel])

    return PipelineResult(
        as_of=as_of,
        range_key=range_key,
        series=series,
        summaries=summaries,
        features=features,
        classification=classification,
        stale=stale,
        latest=in_range[-1] if in_range else None,
        total_readings=len(readings),
        day_groups=day_groups,
        day_summaries=day_summaries,
    )
