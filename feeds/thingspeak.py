"""ThingSpeak channel client producing station readings."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional

import httpx

from feeds.parsing import FeedError, parse_timestamp, parse_value
from models.records import Channel, Reading
from settings import get_settings

logger = logging.getLogger(__name__)

DEFAULT_FIELD_MAP: Dict[Channel, int] = {
    Channel.temperature: 1,
    Channel.humidity: 2,
    Channel.pressure: 3,
    Channel.aux_temperature: 4,
}


def parse_feeds(payload: Mapping[str, Any], field_map: Mapping[Channel, int]) -> List[Reading]:
    """Turn a ``feeds.json`` payload into readings, skipping undated entries."""
    readings: List[Reading] = []
    for entry in payload.get("feeds") or []:
        created_at = entry.get("created_at")
        if not isinstance(created_at, str):
            continue
        try:
            timestamp = parse_timestamp(created_at)
        except ValueError:
            logger.warning("Skipping feed entry", extra={"reason": "invalid timestamp"})
            continue
        fields = {
            channel: parse_value(entry.get(f"field{number}"))
            for channel, number in field_map.items()
        }
        readings.append(Reading(timestamp=timestamp, fields=fields))
    readings.sort(key=lambda reading: reading.timestamp)
    return readings


class ThingSpeakFeed:
    """Fetches the most recent entries of one ThingSpeak channel."""

    def __init__(
        self,
        channel_id: str,
        read_key: Optional[str] = None,
        base_url: str = "https://api.thingspeak.com",
        timeout: float = 30.0,
        field_map: Optional[Mapping[Channel, int]] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.channel_id = channel_id
        self._read_key = read_key
        self.field_map = dict(field_map or DEFAULT_FIELD_MAP)
        self._client = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def fetch(self, results: int = 2000) -> List[Reading]:
        params: Dict[str, Any] = {"results": results}
        if self._read_key:
            params["api_key"] = self._read_key
        try:
            response = self._client.get(f"/channels/{self.channel_id}/feeds.json", params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise FeedError(
                f"ThingSpeak returned HTTP {exc.response.status_code} for channel {self.channel_id}."
            ) from exc
        except httpx.HTTPError as exc:
            raise FeedError(f"Could not reach ThingSpeak: {exc}") from exc
        except ValueError as exc:
            raise FeedError("ThingSpeak returned a malformed payload.") from exc

        if not isinstance(payload, dict):
            raise FeedError("ThingSpeak returned a malformed payload.")
        readings = parse_feeds(payload, self.field_map)
        logger.info(
            "Fetched ThingSpeak feed",
            extra={"channel_id": self.channel_id, "reading_count": len(readings)},
        )
        return readings


@lru_cache
def build_default_feed() -> ThingSpeakFeed:
    settings = get_settings()
    if not settings.thingspeak_channel_id:
        raise FeedError("THINGSPEAK_CHANNEL_ID is not configured.")
    return ThingSpeakFeed(
        channel_id=settings.thingspeak_channel_id,
        read_key=settings.thingspeak_read_key,
        base_url=settings.thingspeak_base_url,
        timeout=settings.thingspeak_timeout,
    )
