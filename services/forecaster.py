"""Fetch, evaluate and cache orchestration around the pure pipeline."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from functools import lru_cache
from threading import Lock
from typing import List, Optional, Protocol

from datastore.snapshots import Snapshot, SnapshotStore, build_default_store
from feeds.thingspeak import build_default_feed
from models.config import PipelineConfig, default_config
from models.records import Reading
from services.aggregator import Aggregator
from services.pipeline import evaluate
from services.windows import DEFAULT_RANGE, range_hours, results_for_range
from settings import Settings, get_settings

logger = logging.getLogger(__name__)


class ReadingFeed(Protocol):
    def fetch(self, results: int = ...) -> List[Reading]: ...

    def close(self) -> None: ...


class ForecastService:
    """Coordinates the feed, the pipeline and the snapshot cache.

    Refreshes are serialized: a refresh fetches, cleans and classifies before
    the next one may start, so a snapshot never mixes two feed states.
    """

    def __init__(
        self,
        feed: ReadingFeed,
        store: SnapshotStore,
        config: PipelineConfig,
        settings: Settings,
        aggregator: Optional[Aggregator] = None,
    ) -> None:
        self.feed = feed
        self.store = store
        self.config = config
        self.settings = settings
        self.aggregator = aggregator or Aggregator()
        self.executor = ThreadPoolExecutor(max_workers=1)
        self._refresh_lock = Lock()

    def now(self) -> datetime:
        return datetime.now(self.settings.tz)

    def refresh(self, range_key: str = DEFAULT_RANGE, as_of: Optional[datetime] = None) -> Snapshot:
        range_hours(range_key)
        with self._refresh_lock:
            start_time = time.perf_counter()
            try:
                readings = self.feed.fetch(results=results_for_range(range_key))
            except Exception:
                logger.exception("Feed refresh failed", extra={"range_key": range_key})
                raise

            evaluated_at = as_of or self.now()
            result = evaluate(
                readings,
                evaluated_at,
                self.config,
                range_key=range_key,
                compare_days=self.config.compare_days,
                aggregator=self.aggregator,
            )
            processing_ms = int((time.perf_counter() - start_time) * 1000)
            snapshot = Snapshot(
                range_key=range_key,
                evaluated_at=evaluated_at,
                processing_ms=processing_ms,
                result=result,
            )
            self.store.put(snapshot)

        classification = result.classification
        logger.info(
            "Forecast refreshed",
            extra={
                "range_key": range_key,
                "reading_count": len(readings),
                "sample_count": result.features.sample_count if result.features else 0,
                "icon": classification.icon.value if classification else None,
                "stale": result.stale,
                "processing_ms": processing_ms,
            },
        )
        return snapshot

    def schedule_refresh(self, range_key: str = DEFAULT_RANGE) -> Future[Snapshot]:
        """Queue a refresh on the background worker."""
        range_hours(range_key)
        return self.executor.submit(self.refresh, range_key)

    def latest(self, range_key: str = DEFAULT_RANGE) -> Snapshot:
        snapshot = self.store.get(range_key)
        if snapshot is None:
            raise KeyError(f"No forecast has been computed for range {range_key!r}.")
        return snapshot

    def shutdown(self) -> None:
        """Clean up executor resources during application shutdown."""
        self.executor.shutdown(wait=False, cancel_futures=True)
        self.feed.close()


@lru_cache
def build_default_service() -> ForecastService:
    """Factory that wires the service with the configured ThingSpeak channel."""
    settings = get_settings()
    config = default_config(settings.temperature_profile, settings.compare_days)
    return ForecastService(
        feed=build_default_feed(),
        store=build_default_store(),
        config=config,
        settings=settings,
    )
