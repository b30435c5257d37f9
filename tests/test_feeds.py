from __future__ import annotations

import io
from datetime import datetime, timezone
from pathlib import Path
from zoneinfo import ZoneInfo

import httpx
import pytest

from feeds.csv_feed import FeedRowError, load_csv, read_csv
from feeds.parsing import FeedError, parse_timestamp, parse_value
from feeds.thingspeak import DEFAULT_FIELD_MAP, ThingSpeakFeed, build_default_feed, parse_feeds
from models.records import Channel
from settings import get_settings

PAYLOAD = {
    "channel": {"id": 123, "name": "Station"},
    "feeds": [
        {
            "created_at": "2024-01-15T12:00:00Z",
            "entry_id": 2,
            "field1": "12.5",
            "field2": "",
            "field3": "1013.2",
            "field4": None,
        },
        {
            "created_at": "2024-01-15T11:00:00Z",
            "entry_id": 1,
            "field1": "12.0",
            "field2": "88",
            "field3": "n/a",
            "field4": "40.5",
        },
        {"created_at": "yesterday", "entry_id": 3, "field1": "1"},
        {"entry_id": 4, "field1": "1"},
    ],
}


def _feed(handler, read_key: str | None = None) -> ThingSpeakFeed:
    return ThingSpeakFeed(
        channel_id="123",
        read_key=read_key,
        base_url="http://thingspeak.test",
        transport=httpx.MockTransport(handler),
    )


def test_parse_timestamp_normalizes_to_utc() -> None:
    assert parse_timestamp("2024-01-15T13:00:00+01:00") == datetime(2024, 1, 15, 12, tzinfo=timezone.utc)
    assert parse_timestamp("2024-01-15T12:00:00Z").tzinfo == timezone.utc
    assert parse_timestamp("2024-01-15 12:00:00") == datetime(2024, 1, 15, 12, tzinfo=timezone.utc)
    rome = ZoneInfo("Europe/Rome")
    assert parse_timestamp("2024-01-15T13:00:00", default_tz=rome) == datetime(2024, 1, 15, 12, tzinfo=timezone.utc)
    assert parse_timestamp("2024-01-15T13:00:00Z", default_tz=rome).hour == 13
    with pytest.raises(ValueError):
        parse_timestamp("not a date")
    with pytest.raises(ValueError):
        parse_timestamp("  ")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("1013.2", 1013.2), (" 7 ", 7.0), (5, 5.0), ("", None), ("abc", None), (None, None), (True, None)],
)
def test_parse_value(raw, expected) -> None:
    assert parse_value(raw) == expected


def test_parse_feeds_skips_undated_entries_and_sorts() -> None:
    readings = parse_feeds(PAYLOAD, DEFAULT_FIELD_MAP)

    assert [r.timestamp.hour for r in readings] == [11, 12]
    first, second = readings
    assert first.value(Channel.humidity) == 88.0
    assert first.value(Channel.pressure) is None
    assert second.value(Channel.pressure) == 1013.2
    assert second.value(Channel.humidity) is None
    assert second.value(Channel.aux_temperature) is None


def test_fetch_requests_channel_feed() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json=PAYLOAD)

    feed = _feed(handler, read_key="secret")
    readings = feed.fetch(results=3000)
    feed.close()

    assert seen["path"] == "/channels/123/feeds.json"
    assert seen["params"] == {"results": "3000", "api_key": "secret"}
    assert len(readings) == 2


def test_fetch_without_read_key_omits_it() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"feeds": []})

    assert _feed(handler).fetch() == []
    assert seen["params"] == {"results": "2000"}


def test_custom_field_map() -> None:
    feed = ThingSpeakFeed(
        channel_id="9",
        base_url="http://thingspeak.test",
        field_map={Channel.pressure: 5},
        transport=httpx.MockTransport(
            lambda request: httpx.Response(
                200, json={"feeds": [{"created_at": "2024-01-15T12:00:00Z", "field5": "1001"}]}
            )
        ),
    )

    (reading,) = feed.fetch()

    assert reading.value(Channel.pressure) == 1001.0
    assert reading.value(Channel.temperature) is None


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="boom"),
        httpx.Response(404, json={"error": "not found"}),
        httpx.Response(200, text="<html>"),
        httpx.Response(200, json=["not", "an", "object"]),
    ],
)
def test_fetch_failures_become_feed_errors(response: httpx.Response) -> None:
    with pytest.raises(FeedError):
        _feed(lambda request: response).fetch()


def test_transport_error_becomes_feed_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(FeedError, match="Could not reach"):
        _feed(handler).fetch()


def test_default_feed_requires_channel(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("THINGSPEAK_CHANNEL_ID", raising=False)
    get_settings.cache_clear()
    build_default_feed.cache_clear()
    try:
        with pytest.raises(FeedError):
            build_default_feed()
    finally:
        get_settings.cache_clear()
        build_default_feed.cache_clear()


def test_read_csv_collects_rows_and_errors() -> None:
    handle = io.StringIO(
        "Timestamp,Pressure,humidity,extra\n"
        "2024-01-15T12:00:00Z,1013.5,80,x\n"
        ",1012,70,x\n"
        "garbage,1012,70,x\n"
        "2024-01-15T11:00:00Z,,bad,x\n"
    )

    feed = read_csv(handle)

    assert [r.timestamp.hour for r in feed.readings] == [11, 12]
    assert feed.readings[0].value(Channel.pressure) is None
    assert feed.readings[0].value(Channel.humidity) is None
    assert feed.readings[1].value(Channel.pressure) == 1013.5
    assert feed.readings[1].value(Channel.temperature) is None
    assert feed.errors == [
        FeedRowError(row_number=3, reason="missing timestamp"),
        FeedRowError(row_number=4, reason="invalid timestamp"),
    ]


def test_read_csv_requires_header_and_timestamp() -> None:
    with pytest.raises(FeedError):
        read_csv(io.StringIO(""))
    with pytest.raises(FeedError, match="timestamp"):
        read_csv(io.StringIO("pressure,humidity\n1013,80\n"))


def test_load_csv_from_disk(tmp_path: Path) -> None:
    path = tmp_path / "readings.csv"
    path.write_text("timestamp,temperature\n2024-01-15T12:00:00Z,4.5\n", encoding="utf-8")

    feed = load_csv(path)

    assert len(feed.readings) == 1
    assert feed.readings[0].value(Channel.temperature) == 4.5
    assert feed.errors == []
