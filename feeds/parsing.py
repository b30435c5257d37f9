"""Conversion of raw feed values into typed readings."""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Any, Optional


class FeedError(RuntimeError):
    """Raised when a feed cannot be retrieved or understood."""


def parse_timestamp(value: str, default_tz: tzinfo = timezone.utc) -> datetime:
    """Parse an ISO-8601 timestamp into UTC; naive values are read in ``default_tz``."""
    candidate = value.strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")

    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError("Invalid timestamp format") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=default_tz)

    return parsed.astimezone(timezone.utc)


def parse_value(raw: Any) -> Optional[float]:
    """Best-effort numeric conversion; blanks and garbage become ``None``."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    candidate = str(raw).strip()
    if not candidate:
        return None
    try:
        return float(candidate)
    except ValueError:
        return None
