"""The agent's loop: poll runtime metrics, report them in batches, log failures."""

from __future__ import annotations

import gc
import queue
import random
import sys
import threading
import time
import tracemalloc
from typing import Callable, Iterable, Iterator, List, Protocol

from .logger import get_logger
from .types import COUNTER, GAUGE, Metrics

_WAIT_STEP = 0.05
_PROCESS_START_NS = time.perf_counter_ns()


class MetricUpdater(Protocol):
    def update(self, metrics: List[Metrics]) -> None: ...


class _GCTracker:
    """Records garbage collection pause times through ``gc.callbacks``."""

    def __init__(self) -> None:
        self.last_gc_ns = 0
        self.pause_total_ns = 0
        self._started_ns = None
        self._installed = False
        self._lock = threading.Lock()

    def install(self) -> None:
        with self._lock:
            if not self._installed:
                gc.callbacks.append(self._callback)
                self._installed = True

    def _callback(self, phase: str, info: dict) -> None:
        if phase == "start":
            self._started_ns = time.perf_counter_ns()
        elif phase == "stop" and self._started_ns is not None:
            self.pause_total_ns += time.perf_counter_ns() - self._started_ns
            self.last_gc_ns = time.time_ns()
            self._started_ns = None


_gc_tracker = _GCTracker()


def _max_rss_bytes() -> int:
    try:
        import resource
    except ImportError:
        return 0
    rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    return rss if sys.platform == "darwin" else rss * 1024


def read_runtime_metrics() -> List[Metrics]:
    """Return one poll of runtime gauges, a PollCount of 1 and a RandomValue."""
    _gc_tracker.install()
    stats = gc.get_stats()
    collections = sum(s.get("collections", 0) for s in stats)
    collected = sum(s.get("collected", 0) for s in stats)
    blocks = sys.getallocatedblocks()
    current, peak = tracemalloc.get_traced_memory() if tracemalloc.is_tracing() else (0, 0)
    rss = _max_rss_bytes()
    uptime_ns = max(time.perf_counter_ns() - _PROCESS_START_NS, 1)

    gauges = {
        "Alloc": current,
        "BuckHashSys": 0,
        "Frees": collected,
        "GCCPUFraction": _gc_tracker.pause_total_ns / uptime_ns,
        "GCSys": 0,
        "HeapAlloc": current,
        "HeapIdle": 0,
        "HeapInuse": current,
        "HeapObjects": blocks,
        "HeapReleased": 0,
        "HeapSys": rss,
        "LastGC": _gc_tracker.last_gc_ns,
        "Lookups": 0,
        "MCacheInuse": 0,
        "MCacheSys": 0,
        "MSpanInuse": 0,
        "MSpanSys": 0,
        "Mallocs": blocks,
        "NextGC": 0,
        "NumForcedGC": 0,
        "NumGC": collections,
        "OtherSys": 0,
        "PauseTotalNs": _gc_tracker.pause_total_ns,
        "StackInuse": 0,
        "StackSys": 0,
        "Sys": rss,
        "TotalAlloc": peak,
    }
    metrics = [Metrics(id=name, type=GAUGE, value=float(v)) for name, v in gauges.items()]
    metrics.append(Metrics(id="PollCount", type=COUNTER, delta=1))
    metrics.append(Metrics(id="RandomValue", type=GAUGE, value=random.random()))
    return metrics


def collect_runtime_metrics(stop_event: threading.Event, poll_interval: float) -> Iterator[Metrics]:
    """Yield a poll of runtime metrics every ``poll_interval`` seconds until stopped."""
    while not stop_event.wait(poll_interval):
        yield from read_runtime_metrics()


def update_metrics(
    stop_event: threading.Event,
    report_interval: float,
    updater: MetricUpdater,
    source: Iterable[Metrics],
) -> Iterator[Exception]:
    """Buffer metrics from ``source`` and send them every ``report_interval`` seconds.

    The buffer is also sent when ``source`` ends or a stop is requested, and then
    the generator ends. Every failure of the updater, or of ``source``, is yielded.
    """
    items: "queue.Queue[object]" = queue.Queue()
    finished = object()

    def pump() -> None:
        try:
            for metric in source:
                items.put(metric)
        except Exception as exc:
            items.put(exc)
        finally:
            items.put(finished)

    threading.Thread(target=pump, name="metric-source", daemon=True).start()

    buffer: List[Metrics] = []

    def flush() -> Iterator[Exception]:
        if not buffer:
            return
        batch = list(buffer)
        buffer.clear()
        try:
            updater.update(batch)
        except Exception as exc:
            yield exc

    next_report = time.monotonic() + report_interval
    while True:
        if stop_event.is_set():
            yield from flush()
            return
        timeout = max(0.0, min(next_report - time.monotonic(), _WAIT_STEP))
        try:
            item = items.get(timeout=timeout)
        except queue.Empty:
            item = None
        if item is finished:
            yield from flush()
            return
        if isinstance(item, Exception):
            yield item
        elif isinstance(item, Metrics):
            buffer.append(item)

        now = time.monotonic()
        if now >= next_report:
            yield from flush()
            next_report = max(next_report + report_interval, now)


def log_errors(stop_event: threading.Event, errors: Iterable[Exception | None]) -> int:
    """Log each error until the errors end or a stop is requested; return how many."""
    logged = 0
    for error in errors:
        if stop_event.is_set():
            break
        if error is not None:
            get_logger().error("update error: %s", error)
            logged += 1
    return logged


def new_metric_agent_worker(
    updater: MetricUpdater, poll_interval: float, report_interval: float
) -> Callable[[threading.Event], None]:
    """Return a worker that polls, reports and logs until its stop event is set."""

    def worker(stop_event: threading.Event) -> None:
        source = collect_runtime_metrics(stop_event, poll_interval)
        failures = update_metrics(stop_event, report_interval, updater, source)
        log_errors(stop_event, failures)

    return worker