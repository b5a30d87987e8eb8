"""In-memory storage of metrics keyed by their identifier."""

from __future__ import annotations

import dataclasses
import threading
from typing import Optional

from .types import MetricID, Metrics


class MetricMemoryRepository:
    """Thread-safe in-memory store that saves, fetches and lists metrics."""

    def __init__(self) -> None:
        self._metrics: dict[MetricID, Metrics] = {}
        self._lock = threading.RLock()

    def save(self, metric: Metrics) -> None:
        """Store a copy of ``metric``, replacing any metric with the same id and type."""
        with self._lock:
            self._metrics[metric.key] = dataclasses.replace(metric)

    def get(self, metric_id: MetricID) -> Optional[Metrics]:
        """Return a copy of the stored metric, or None if there is none."""
        with self._lock:
            stored = self._metrics.get(metric_id)
            return dataclasses.replace(stored) if stored is not None else None

    def list(self) -> list[Metrics]:
        """Return copies of all stored metrics sorted by name."""
        with self._lock:
            snapshot = [dataclasses.replace(m) for m in self._metrics.values()]
        return sorted(snapshot, key=lambda m: m.id)

    def clear(self) -> None:
        """Remove every stored metric."""
        with self._lock:
            self._metrics.clear()