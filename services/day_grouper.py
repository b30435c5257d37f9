"""Split a series into calendar days on a shared hour-of-day axis."""

from __future__ import annotations

from datetime import datetime, time, timedelta
from typing import Sequence, Tuple

from models.records import DayGroup, HourPoint, Point

_END_OF_DAY = time(23, 59, 59, 999000)


def day_label(offset: int) -> str:
    if offset == 0:
        return "Today"
    if offset == 1:
        return "Yesterday"
    return f"{offset} days ago"


def hour_of_day(ts: datetime) -> float:
    return ts.hour + ts.minute / 60 + ts.second / 3600


def group_by_day(series: Sequence[Point], days_back: int, now: datetime) -> Tuple[DayGroup, ...]:
    """Return one group per day offset ``0..days_back-1`` in the timezone of ``now``.

    Today's group stops at ``now``; earlier days cover the full calendar day.
    """
    if days_back < 1:
        raise ValueError("days_back must be at least 1.")

    tz = now.tzinfo
    groups = []
    for offset in range(days_back):
        day = now.date() - timedelta(days=offset)
        start = datetime.combine(day, time.min, tzinfo=tz)
        end = now if offset == 0 else datetime.combine(day, _END_OF_DAY, tzinfo=tz)

        points = []
        for point in series:
            if not start <= point.x <= end:
                continue
            local = point.x.astimezone(tz) if tz is not None else point.x
            points.append(HourPoint(x=hour_of_day(local), y=point.y))
        points.sort(key=lambda p: p.x)

        groups.append(
            DayGroup(
                offset=offset,
                label=day_label(offset),
                start=start,
                end=end,
                points=tuple(points),
            )
        )
    return tuple(groups)
