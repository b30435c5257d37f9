import inspect
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterator, List

import pytest
from fastapi.testclient import TestClient

from app.api import evaluate_readings
from app.main import create_app
from datastore.snapshots import SnapshotStore
from feeds.parsing import FeedError
from feeds.thingspeak import build_default_feed
from models.config import default_config
from models.records import Channel, Reading
from services.forecaster import ForecastService, build_default_service
from settings import Settings, get_settings

EVALUATE_PAYLOAD = {
    "as_of": "2024-01-15T12:00:00Z",
    "range": "1d",
    "readings": [
        {"timestamp": "2024-01-15T06:00:00Z", "pressure": 1025.0, "humidity": 90, "temperature": 12},
        {"timestamp": "2024-01-15T09:00:00Z", "pressure": 1023.0, "humidity": 90, "temperature": 12},
        {"timestamp": "2024-01-15T10:00:00Z", "pressure": 1040.0, "humidity": 90, "temperature": 12},
        {"timestamp": "2024-01-15T11:00:00Z", "pressure": 1019.0, "humidity": 90, "temperature": 12},
        {"timestamp": "2024-01-15T12:00:00Z", "pressure": 1015.0, "humidity": 90, "temperature": 12},
    ],
}


class StubFeed:
    def __init__(self) -> None:
        self.error: Exception | None = None
        self.calls: List[int] = []

    def fetch(self, results: int = 2000) -> List[Reading]:
        self.calls.append(results)
        if self.error is not None:
            raise self.error
        now = datetime.now(timezone.utc)
        return [
            Reading(
                timestamp=now - timedelta(hours=h),
                fields={Channel.pressure: p, Channel.humidity: 90.0, Channel.temperature: 12.0},
            )
            for h, p in ((6, 1025.0), (3, 1023.0), (1, 1019.0), (0, 1015.0))
        ]

    def close(self) -> None:
        pass


def _settings() -> Settings:
    return Settings(
        thingspeak_base_url="http://thingspeak.test",
        thingspeak_channel_id="123",
        thingspeak_read_key=None,
        thingspeak_timeout=5.0,
        timezone="UTC",
        temperature_profile="exterior",
        compare_days=1,
        log_level="INFO",
    )


@pytest.fixture
def service_registry() -> Dict[str, ForecastService]:
    return {}


@pytest.fixture
def api_client(monkeypatch, service_registry) -> Iterator[TestClient]:
    def build_test_service() -> ForecastService:
        service = service_registry.get("default")
        if service is None:
            service = ForecastService(
                feed=StubFeed(),
                store=SnapshotStore(),
                config=default_config(),
                settings=_settings(),
            )
            service_registry["default"] = service
        return service

    def cache_clear() -> None:
        while service_registry:
            _, service = service_registry.popitem()
            service.shutdown()

    build_test_service.cache_clear = cache_clear  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_service", build_test_service)
    monkeypatch.setattr("app.api.build_default_service", build_test_service)

    app = create_app()
    with TestClient(app) as client:
        yield client

    cache_clear()


def test_lifespan_shuts_down_service_and_clears_cache(monkeypatch) -> None:
    monkeypatch.setenv("THINGSPEAK_CHANNEL_ID", "123")
    for cache in (get_settings, build_default_feed, build_default_service):
        cache.cache_clear()
    app = create_app()

    try:
        with TestClient(app):
            service_during = build_default_service()
            assert service_during.executor._shutdown is False

        assert service_during.executor._shutdown is True
        service_after = build_default_service()
        assert service_after is not service_during
        assert service_after.executor._shutdown is False
        service_after.shutdown()
    finally:
        for cache in (get_settings, build_default_feed, build_default_service):
            cache.cache_clear()


def test_live_routes_unavailable_without_channel(monkeypatch) -> None:
    monkeypatch.delenv("THINGSPEAK_CHANNEL_ID", raising=False)
    for cache in (get_settings, build_default_feed, build_default_service):
        cache.cache_clear()

    try:
        with TestClient(create_app()) as client:
            assert client.get("/health").json() == {"status": "ok"}
            response = client.get("/forecast")
        assert response.status_code == 503
        assert "THINGSPEAK_CHANNEL_ID" in response.json()["detail"]
    finally:
        for cache in (get_settings, build_default_feed, build_default_service):
            cache.cache_clear()


def test_health_and_root(api_client: TestClient) -> None:
    assert api_client.get("/health").json() == {"status": "ok"}
    root = api_client.get("/")
    assert root.status_code == 200
    assert root.json()["status"] == "ok"


def test_evaluate_posted_readings(api_client: TestClient) -> None:
    response = api_client.post("/evaluate", json=EVALUATE_PAYLOAD)

    assert response.status_code == 200
    body = response.json()
    assert body["range_key"] == "1d"
    assert body["total_readings"] == 5
    assert body["stale"] is False
    assert body["classification"]["icon"] == "storm"
    assert body["classification"]["pressure_trend"] == "strong_down"
    assert body["features"]["dp3h"] == -8.0
    assert [p["y"] for p in body["series"]["pressure"]] == [1025.0, 1023.0, 1019.0, 1015.0]
    assert body["summaries"]["pressure"]["max_point"]["y"] == 1025.0
    assert body["latest"]["fields"]["pressure"] == 1015.0
    assert body["day_groups"] == {}


def test_evaluate_with_day_comparison(api_client: TestClient) -> None:
    payload = {**EVALUATE_PAYLOAD, "compare_days": 2}

    body = api_client.post("/evaluate", json=payload).json()

    labels = [group["label"] for group in body["day_groups"]["humidity"]]
    assert labels == ["Today", "Yesterday"]
    assert [p["x"] for p in body["day_groups"]["pressure"][0]["points"]] == [6.0, 9.0, 11.0, 12.0]
    today = body["day_summaries"]["pressure"]["0"]
    assert today["count"] == 4
    assert today["max_point"] == {"x": 6.0, "y": 1025.0}
    assert body["day_summaries"]["pressure"]["1"]["count"] == 0


def test_evaluate_with_too_few_readings(api_client: TestClient) -> None:
    payload = {**EVALUATE_PAYLOAD, "readings": EVALUATE_PAYLOAD["readings"][:2]}

    body = api_client.post("/evaluate", json=payload).json()

    assert body["classification"] is None
    assert body["features"] is None


@pytest.mark.parametrize(
    "override",
    [{"range": "2d"}, {"compare_days": 0}, {"readings": [{"pressure": 1000}]}],
)
def test_evaluate_rejects_bad_requests(api_client: TestClient, override) -> None:
    response = api_client.post("/evaluate", json={**EVALUATE_PAYLOAD, **override})

    assert response.status_code == 422


def test_forecast_refreshes_and_caches(api_client: TestClient, service_registry) -> None:
    assert api_client.get("/snapshots/1d").status_code == 404

    response = api_client.get("/forecast", params={"range": "1w"})

    assert response.status_code == 200
    body = response.json()
    assert body["range_key"] == "1w"
    assert isinstance(body["processing_ms"], int)
    assert body["result"]["classification"]["icon"] == "storm"
    assert service_registry["default"].feed.calls == [3000]

    cached = api_client.get("/snapshots/1w")
    assert cached.status_code == 200
    assert cached.json() == body


def test_forecast_feed_failure_returns_bad_gateway(api_client: TestClient, service_registry) -> None:
    api_client.get("/health")
    service = service_registry["default"]
    service.feed.error = FeedError("ThingSpeak returned HTTP 500 for channel 123.")

    response = api_client.get("/forecast")

    assert response.status_code == 502
    assert "HTTP 500" in response.json()["detail"]


def test_unknown_range_is_unprocessable(api_client: TestClient) -> None:
    assert api_client.get("/forecast", params={"range": "2d"}).status_code == 422
    assert api_client.get("/snapshots/2d").status_code == 422
    assert api_client.post("/refresh", params={"range": "2d"}).status_code == 422


def test_refresh_is_scheduled_in_background(api_client: TestClient, service_registry) -> None:
    response = api_client.post("/refresh", params={"range": "6h"})

    assert response.status_code == 202
    assert response.json() == {"status": "scheduled", "range_key": "6h"}

    service_registry["default"].executor.shutdown(wait=True)
    snapshot = api_client.get("/snapshots/6h")
    assert snapshot.status_code == 200
    assert snapshot.json()["range_key"] == "6h"


def test_naive_as_of_is_read_in_station_timezone(api_client: TestClient, monkeypatch) -> None:
    monkeypatch.setenv("STATION_TIMEZONE", "Europe/Rome")
    get_settings.cache_clear()
    payload = {**EVALUATE_PAYLOAD, "as_of": "2024-01-15T13:00:00"}

    try:
        response = api_client.post("/evaluate", json=payload)
    finally:
        get_settings.cache_clear()

    assert response.status_code == 200
    body = response.json()
    assert body["as_of"] == "2024-01-15T13:00:00+01:00"
    assert body["classification"]["icon"] == "storm"


def test_evaluate_runs_in_threadpool() -> None:
    # Sync routes are dispatched to the threadpool instead of the event loop.
    assert not inspect.iscoroutinefunction(evaluate_readings)
