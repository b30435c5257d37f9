"""Time-window helpers: display ranges, latest values and windowed deltas."""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional, Sequence, Tuple

from models.records import Point, Reading

RANGE_HOURS: Dict[str, float] = {
    "1h": 1,
    "3h": 3,
    "6h": 6,
    "12h": 12,
    "1d": 24,
    "1w": 24 * 7,
    "1m": 24 * 30,
    "1y": 24 * 365,
}

DEFAULT_RANGE = "1d"
_DEFAULT_RESULTS = 2000
_RESULTS_BY_RANGE = {"1w": 3000, "1m": 5000, "1y": 8000}


def range_hours(range_key: str) -> float:
    try:
        return RANGE_HOURS[range_key]
    except KeyError as exc:
        raise ValueError(
            f"Unknown range {range_key!r}; expected one of {', '.join(RANGE_HOURS)}."
        ) from exc


def results_for_range(range_key: str) -> int:
    """Number of feed entries worth requesting to cover ``range_key``."""
    range_hours(range_key)
    return _RESULTS_BY_RANGE.get(range_key, _DEFAULT_RESULTS)


def select_range(readings: Iterable[Reading], hours: float, end: datetime) -> Tuple[Reading, ...]:
    start = end - timedelta(hours=hours)
    return tuple(r for r in readings if start <= r.timestamp <= end)


def trailing(series: Sequence[Point], hours: float, end: datetime) -> Tuple[Point, ...]:
    start = end - timedelta(hours=hours)
    return tuple(p for p in series if start <= p.x <= end)


def _present(value: Optional[float]) -> bool:
    return value is not None and not math.isnan(value)


def last_valid(series: Sequence[Point]) -> Optional[float]:
    for point in reversed(series):
        if _present(point.y) and math.isfinite(point.y):
            return point.y
    return None


def delta_over_window(
    series: Sequence[Point], window_hours: float, end: Optional[datetime] = None
) -> Optional[float]:
    """Change between the first and last present values of the trailing window.

    The window ends at ``end``, the newest reading of the feed, or at the final
    element when omitted; never at the current time, so a stale feed still
    yields a delta. A channel with no present value in the window yields
    ``None``.
    """
    if not series:
        return None

    end = end or series[-1].x
    cutoff = end - timedelta(hours=window_hours)
    first_val: Optional[float] = None
    last_val: Optional[float] = None
    for point in series:
        if not cutoff <= point.x <= end or not _present(point.y):
            continue
        if first_val is None:
            first_val = point.y
        last_val = point.y

    if first_val is None or last_val is None:
        return None
    return last_val - first_val
