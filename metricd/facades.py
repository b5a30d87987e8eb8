"""Client that pushes metrics to the metric server."""

from __future__ import annotations

import gzip
import http
import json
from typing import Iterable, Optional

import requests

from .logger import get_logger
from .types import Metrics


class MetricUpdateError(Exception):
    """Sending metrics to the server failed."""


def compress_metric(metric: Metrics) -> bytes:
    """Return the metric's JSON form, gzip-compressed."""
    data = json.dumps(metric.to_dict(), separators=(",", ":")).encode("utf-8")
    return gzip.compress(data)


def _status_text(response: requests.Response) -> str:
    reason = response.reason
    if not reason:
        try:
            reason = http.HTTPStatus(response.status_code).phrase
        except ValueError:
            reason = ""
    return f"{response.status_code} {reason}".rstrip()


class MetricUpdateFacade:
    """Sends metrics one by one to the server's ``/update/`` endpoint."""

    def __init__(
        self,
        server_address: str,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.server_address = server_address
        self._session = session if session is not None else requests.Session()
        self._timeout = timeout

    @property
    def url(self) -> str:
        address = self.server_address
        if not address.startswith(("http://", "https://")):
            address = "http://" + address
        return f"{address}/update/"

    def update(self, metrics: Iterable[Metrics]) -> None:
        """POST each metric; raise MetricUpdateError on the first failure."""
        url = self.url
        for metric in metrics:
            body = compress_metric(metric)
            try:
                response = self._session.post(
                    url,
                    data=body,
                    headers={
                        "Content-Type": "application/json",
                        "Content-Encoding": "gzip",
                    },
                    timeout=self._timeout,
                )
            except requests.RequestException as exc:
                get_logger().error(
                    "Failed to send metrics update request for metric ID=%s: %s",
                    metric.id,
                    exc,
                )
                raise MetricUpdateError(
                    f"failed to send metrics update request: {exc}"
                ) from exc

            if response.status_code > 399:
                status = _status_text(response)
                get_logger().error(
                    "Metrics update request failed for metric ID=%s: %s",
                    metric.id,
                    status,
                )
                raise MetricUpdateError(f"metrics update request failed: {status}")