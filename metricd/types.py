"""Metric data types and their text renderings."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional

COUNTER = "counter"
GAUGE = "gauge"

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_INT_RE = re.compile(r"[+-]?[0-9]+")
_DEC_FLOAT_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_HEX_FLOAT_RE = re.compile(
    r"[+-]?0[xX](?:[0-9a-fA-F]+\.?[0-9a-fA-F]*|\.[0-9a-fA-F]+)[pP][+-]?[0-9]+"
)
_SPECIAL_FLOAT_RE = re.compile(r"[+-]?(?:infinity|inf)|nan", re.IGNORECASE)

_HTML_ESCAPES = str.maketrans(
    {"<": "&lt;", ">": "&gt;", "&": "&amp;", "'": "&#39;", '"': "&#34;"}
)


def _parse_int64(text: str) -> int:
    """Parse a base-10 signed 64-bit integer, rejecting anything else."""
    if not _INT_RE.fullmatch(text):
        raise ValueError(f"invalid integer: {text!r}")
    number = int(text)
    if not _INT64_MIN <= number <= _INT64_MAX:
        raise ValueError(f"integer out of range: {text!r}")
    return number


def _parse_float(text: str) -> float:
    """Parse a 64-bit float written as a plain number, hex float, Inf or NaN."""
    if _SPECIAL_FLOAT_RE.fullmatch(text):
        return float(text)
    if _HEX_FLOAT_RE.fullmatch(text):
        try:
            return float.fromhex(text)
        except OverflowError as exc:
            raise ValueError(f"float out of range: {text!r}") from exc
    if _DEC_FLOAT_RE.fullmatch(text):
        number = float(text)
        if math.isinf(number):
            raise ValueError(f"float out of range: {text!r}")
        return number
    raise ValueError(f"invalid float: {text!r}")


def _format_float(number: float) -> str:
    """Render a float in shortest round-trip form without an exponent."""
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "+Inf" if number > 0 else "-Inf"
    text = format(Decimal(repr(number)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _escape_html(text: str) -> str:
    return text.translate(_HTML_ESCAPES)


@dataclass(frozen=True)
class MetricID:
    """Identifies a metric by its name and type."""

    id: str
    type: str


@dataclass
class Metrics:
    """A metric: counters carry ``delta``, gauges carry ``value``."""

    id: str = ""
    type: str = ""
    delta: Optional[int] = None
    value: Optional[float] = None
    hash: str = ""

    @property
    def key(self) -> MetricID:
        return MetricID(id=self.id, type=self.type)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form, leaving out unset optional fields."""
        data: dict[str, Any] = {"id": self.id, "type": self.type}
        if self.delta is not None:
            data["delta"] = self.delta
        if self.value is not None:
            data["value"] = self.value
        if self.hash:
            data["hash"] = self.hash
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Metrics":
        """Build a metric from its JSON form; raise ValueError on bad fields."""
        if not isinstance(data, Mapping):
            raise ValueError("metric must be a JSON object")

        def text_field(name: str) -> str:
            raw = data.get(name)
            if raw is None:
                return ""
            if not isinstance(raw, str):
                raise ValueError(f"field {name!r} must be a string")
            return raw

        delta = data.get("delta")
        if delta is not None:
            if isinstance(delta, bool) or not isinstance(delta, int):
                raise ValueError("field 'delta' must be an integer")
            if not _INT64_MIN <= delta <= _INT64_MAX:
                raise ValueError("field 'delta' is out of range")

        value = data.get("value")
        if value is not None:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError("field 'value' must be a number")
            value = float(value)

        return cls(
            id=text_field("id"),
            type=text_field("type"),
            delta=delta,
            value=value,
            hash=text_field("hash"),
        )


def new_metric_id(metric_type: str, metric_name: str) -> MetricID:
    """Create a MetricID from a type and a name."""
    return MetricID(id=metric_name, type=metric_type)


def new_metric(metric_type: str, metric_name: str, metric_value: str) -> Metrics:
    """Create a metric, parsing the value for its type; unparsable values stay unset."""
    metric = Metrics(id=metric_name, type=metric_type)
    if metric_type == GAUGE:
        try:
            metric.value = _parse_float(metric_value)
        except ValueError:
            pass
    elif metric_type == COUNTER:
        try:
            metric.delta = _parse_int64(metric_value)
        except ValueError:
            pass
    return metric


def metric_string_value(metric: Metrics) -> str:
    """Return the metric's value as text, or an empty string if it has none."""
    if metric.type == GAUGE and metric.value is not None:
        return _format_float(metric.value)
    if metric.type == COUNTER and metric.delta is not None:
        return str(metric.delta)
    return ""


def metrics_html(metrics: Iterable[Metrics]) -> str:
    """Render an HTML page listing the given metrics."""
    items = []
    for metric in metrics:
        value = metric_string_value(metric) or "N/A"
        items.append(f"<li>{_escape_html(metric.id)}: {_escape_html(value)}</li>")
    return (
        "<html><head><title>Metrics List</title></head><body>"
        "<h1>Metrics</h1>"
        "<ul>" + "".join(items) + "</ul></body></html>"
    )