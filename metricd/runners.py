"""Lifecycle management for long-running components."""

from __future__ import annotations

import queue
import signal
import threading
from contextlib import contextmanager
from typing import Iterator, Optional, Protocol

_SHUTDOWN_TIMEOUT = 5.0
_WAIT_STEP = 0.05
_SIGNAL_NAMES = ("SIGINT", "SIGTERM", "SIGQUIT")


class Runnable(Protocol):
    """A component that can be started and stopped."""

    def start(self, stop_event: threading.Event) -> None:
        """Run the component; return or raise when done."""

    def stop(self, timeout: float) -> None:
        """Shut the component down within ``timeout`` seconds."""


@contextmanager
def _stop_on_signals(stop_event: threading.Event) -> Iterator[None]:
    """Set ``stop_event`` on termination signals while the block runs."""
    previous = {}

    def handler(signum, frame) -> None:
        stop_event.set()

    try:
        if threading.current_thread() is threading.main_thread():
            for name in _SIGNAL_NAMES:
                signum = getattr(signal, name, None)
                if signum is None or signal.getsignal(signum) is None:
                    continue
                previous[signum] = signal.signal(signum, handler)
        yield
    finally:
        for signum, old in previous.items():
            signal.signal(signum, old)


def run(runnable: Runnable, stop_event: Optional[threading.Event] = None) -> None:
    """Start ``runnable`` and block until it fails or a stop is requested.

    The stop is requested by setting ``stop_event`` or by SIGINT, SIGTERM or
    SIGQUIT. On a stop, ``runnable.stop`` is called with a five-second timeout
    and whatever it raises propagates. An exception from ``start`` is re-raised.
    """
    if stop_event is None:
        stop_event = threading.Event()
    failures: "queue.Queue[BaseException]" = queue.Queue(maxsize=1)

    def start() -> None:
        try:
            runnable.start(stop_event)
        except Exception as exc:
            failures.put(exc)

    with _stop_on_signals(stop_event):
        threading.Thread(target=start, name="runnable-start", daemon=True).start()
        while not stop_event.wait(_WAIT_STEP):
            try:
                error = failures.get_nowait()
            except queue.Empty:
                continue
            raise error

    runnable.stop(_SHUTDOWN_TIMEOUT)