"""Offline feed: station readings recorded as CSV."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, TextIO

from feeds.parsing import FeedError, parse_timestamp, parse_value
from models.records import Channel, Reading

logger = logging.getLogger(__name__)

TIMESTAMP_COLUMN = "timestamp"


@dataclass(frozen=True)
class FeedRowError:
    row_number: int
    reason: str


@dataclass
class CsvFeed:
    readings: List[Reading] = field(default_factory=list)
    errors: List[FeedRowError] = field(default_factory=list)


def read_csv(handle: TextIO) -> CsvFeed:
    """Parse ``timestamp`` plus one column per channel; unknown columns are ignored.

    Rows with a missing or invalid timestamp are skipped and reported. Blank or
    non-numeric channel values become ``None`` and are left to the validator.
    """
    reader = csv.DictReader(handle)
    if not reader.fieldnames:
        raise FeedError("CSV file is missing a header row.")

    normalized = {name.lower().strip(): name for name in reader.fieldnames}
    if TIMESTAMP_COLUMN not in normalized:
        raise FeedError(f"CSV missing required column: {TIMESTAMP_COLUMN}")
    columns = {channel: normalized[channel.value] for channel in Channel if channel.value in normalized}

    feed = CsvFeed()
    for row_number, row in enumerate(reader, start=2):
        timestamp_raw = (row.get(normalized[TIMESTAMP_COLUMN]) or "").strip()
        if not timestamp_raw:
            feed.errors.append(FeedRowError(row_number=row_number, reason="missing timestamp"))
            continue
        try:
            timestamp = parse_timestamp(timestamp_raw)
        except ValueError:
            feed.errors.append(FeedRowError(row_number=row_number, reason="invalid timestamp"))
            continue

        fields = {channel: parse_value(row.get(column)) for channel, column in columns.items()}
        feed.readings.append(Reading(timestamp=timestamp, fields=fields))

    feed.readings.sort(key=lambda reading: reading.timestamp)
    if feed.errors:
        logger.warning(
            "Skipped malformed CSV rows",
            extra={"error_count": len(feed.errors), "reading_count": len(feed.readings)},
        )
    return feed


def load_csv(path: Path) -> CsvFeed:
    with path.open("r", encoding="utf-8", newline="") as handle:
        return read_csv(handle)
