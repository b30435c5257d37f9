"""Summary statistics for clean series and day groups."""

from __future__ import annotations

from typing import Dict, Iterable, Sequence, Union

from models.records import DayGroup, HourPoint, Point, SeriesSummary


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def summarize(self, points: Iterable[Union[Point, HourPoint]]) -> SeriesSummary:
        count = 0
        total = 0.0
        min_point = None
        max_point = None

        for point in points:
            count += 1
            total += point.y
            # Strict comparisons keep the earliest point among equal extremes.
            if min_point is None or point.y < min_point.y:
                min_point = point
            if max_point is None or point.y > max_point.y:
                max_point = point

        return SeriesSummary(
            count=count,
            min_point=min_point,
            max_point=max_point,
            mean=total / count if count else None,
        )

    def summarize_days(self, groups: Sequence[DayGroup]) -> Dict[int, SeriesSummary]:
        """Per-day statistics keyed by day offset; extremes are hour-of-day points."""
        return {group.offset: self.summarize(group.points) for group in groups}
