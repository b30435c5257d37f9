"""Reading validation, spike rejection and clean series construction."""

from __future__ import annotations

import logging
import math
from typing import Iterable, Optional, Sequence, Tuple

from models.config import ChannelLimits
from models.records import Channel, Point, Reading

logger = logging.getLogger(__name__)


def is_valid(value: object, limits: ChannelLimits) -> bool:
    """True when ``value`` is a finite number inside the inclusive limits."""
    if value is None or isinstance(value, bool):
        return False
    if not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and limits.min <= value <= limits.max


def validate(value: object, limits: ChannelLimits) -> Optional[float]:
    return float(value) if is_valid(value, limits) else None  # type: ignore[arg-type]


def validate_reading(reading: Reading, channel: Channel, limits: ChannelLimits) -> Optional[Point]:
    value = validate(reading.value(channel), limits)
    if value is None:
        return None
    return Point(x=reading.timestamp, y=value)


def filter_spikes(points: Sequence[Point], max_delta: Optional[float]) -> Tuple[Point, ...]:
    """Drop points that jump more than ``max_delta`` away from the last kept point.

    The first point is always kept. Rejected points never become the reference
    for the next comparison.
    """
    if max_delta is None or len(points) < 2:
        return tuple(points)

    clean = [points[0]]
    for point in points[1:]:
        if abs(point.y - clean[-1].y) <= max_delta:
            clean.append(point)
    return tuple(clean)


def build_series(
    readings: Iterable[Reading],
    channel: Channel,
    limits: ChannelLimits,
    max_delta: Optional[float] = None,
) -> Tuple[Point, ...]:
    total = 0
    valid: list[Point] = []
    for reading in readings:
        total += 1
        point = validate_reading(reading, channel, limits)
        if point is not None:
            valid.append(point)

    clean = filter_spikes(valid, max_delta)
    rejected = total - len(clean)
    if rejected:
        logger.debug(
            "Dropped readings while building series",
            extra={
                "channel": channel.value,
                "reading_count": total,
                "rejected_count": rejected,
                "spike_count": len(valid) - len(clean),
            },
        )
    return clean
