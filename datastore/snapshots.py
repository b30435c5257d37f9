from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from threading import Lock
from typing import Dict, Optional

from services.pipeline import PipelineResult


@dataclass(frozen=True)
class Snapshot:
    """The outcome of one fetch and evaluation cycle for a display range."""

    range_key: str
    evaluated_at: datetime
    processing_ms: int
    result: PipelineResult


class SnapshotStore:
    """Latest snapshot per display range, held in memory only."""

    def __init__(self) -> None:
        self._items: Dict[str, Snapshot] = {}
        self._lock = Lock()

    def put(self, snapshot: Snapshot) -> None:
        with self._lock:
            current = self._items.get(snapshot.range_key)
            # A slow refresh must not overwrite a newer evaluation.
            if current is not None and current.evaluated_at > snapshot.evaluated_at:
                return
            self._items[snapshot.range_key] = snapshot

    def get(self, range_key: str) -> Optional[Snapshot]:
        with self._lock:
            return self._items.get(range_key)


@lru_cache
def build_default_store() -> SnapshotStore:
    return SnapshotStore()
