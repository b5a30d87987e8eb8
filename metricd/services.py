"""Business operations on metrics built over a storage backend."""

from __future__ import annotations

from typing import List, Optional, Protocol

from .types import COUNTER, MetricID, Metrics


class MetricSaver(Protocol):
    def save(self, metric: Metrics) -> None: ...


class MetricGetter(Protocol):
    def get(self, metric_id: MetricID) -> Optional[Metrics]: ...


class MetricLister(Protocol):
    def list(self) -> List[Metrics]: ...


class MetricUpdateService:
    """Saves metrics, adding counter deltas to the stored totals."""

    def __init__(self, saver: MetricSaver, getter: MetricGetter) -> None:
        self._saver = saver
        self._getter = getter

    def update(self, metrics: List[Metrics]) -> List[Metrics]:
        """Save each metric in turn and return the list with counters accumulated."""
        for metric in metrics:
            if metric.type == COUNTER:
                self._accumulate_counter(metric)
            self._saver.save(metric)
        return metrics

    def _accumulate_counter(self, metric: Metrics) -> None:
        existing = self._getter.get(MetricID(id=metric.id, type=metric.type))
        if existing is not None and existing.delta is not None and metric.delta is not None:
            metric.delta += existing.delta


class MetricGetService:
    """Fetches single metrics."""

    def __init__(self, getter: MetricGetter) -> None:
        self._getter = getter

    def get(self, metric_id: MetricID) -> Optional[Metrics]:
        """Return the metric with this id, or None if it is not stored."""
        return self._getter.get(metric_id)


class MetricListService:
    """Lists all metrics."""

    def __init__(self, lister: MetricLister) -> None:
        self._lister = lister

    def list(self) -> List[Metrics]:
        """Return every stored metric."""
        return self._lister.list()