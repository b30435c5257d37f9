"""Feature extraction for the pressure/humidity weather classifier."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Mapping, Optional, Sequence

from models.config import PipelineConfig
from models.records import Channel, FeatureBundle, Point
from services.windows import delta_over_window, last_valid, trailing


def time_features(ts: datetime) -> dict:
    """Cyclical hour-of-day and day-of-year encodings of ``ts``."""
    hour = ts.hour
    day_of_year = ts.timetuple().tm_yday
    hour_angle = 2 * math.pi * (hour / 24.0)
    doy_angle = 2 * math.pi * (day_of_year / 365.0)
    return {
        "hour": hour,
        "day_of_year": day_of_year,
        "hour_sin": math.sin(hour_angle),
        "hour_cos": math.cos(hour_angle),
        "doy_sin": math.sin(doy_angle),
        "doy_cos": math.cos(doy_angle),
    }


def extract_features(
    series_by_channel: Mapping[Channel, Sequence[Point]],
    as_of: datetime,
    config: Optional[PipelineConfig] = None,
    anchor: Optional[datetime] = None,
) -> Optional[FeatureBundle]:
    """Build the classifier inputs from clean series.

    Every 1/3/6 hour window ends at ``anchor``, the timestamp of the newest
    reading in the lookback window, whichever channels it carried. Without an
    anchor the newest clean point of any channel is used. A channel that went
    silent before a window starts gets ``None`` for that window.

    Returns ``None`` when the trailing lookback window holds fewer pressure
    samples than ``config.windows.min_samples``.
    """
    config = config or PipelineConfig()
    windows = config.windows

    recent = {
        channel: trailing(points, windows.lookback_hours, as_of)
        for channel, points in series_by_channel.items()
    }
    pressure = recent.get(Channel.pressure, ())
    if len(pressure) < windows.min_samples:
        return None
    humidity = recent.get(Channel.humidity, ())
    temperature = recent.get(Channel.temperature, ())

    if anchor is None:
        anchor = max(points[-1].x for points in recent.values() if points)
    now = anchor.astimezone(as_of.tzinfo) if as_of.tzinfo is not None else anchor

    return FeatureBundle(
        now=now,
        p_now=last_valid(pressure),
        t_now=last_valid(temperature),
        h_now=last_valid(humidity),
        dp1h=delta_over_window(pressure, windows.short_hours, anchor),
        dp3h=delta_over_window(pressure, windows.medium_hours, anchor),
        dp6h=delta_over_window(pressure, windows.long_hours, anchor),
        dh3h=delta_over_window(humidity, windows.medium_hours, anchor),
        dh6h=delta_over_window(humidity, windows.long_hours, anchor),
        sample_count=len(pressure),
        age_hours=max(0.0, (as_of - anchor).total_seconds() / 3600.0),
        **time_features(now),
    )
