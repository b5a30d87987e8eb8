import gzip
import json

import pytest
import requests
import responses

from metricd.facades import MetricUpdateError, MetricUpdateFacade, compress_metric
from metricd.types import COUNTER, GAUGE, Metrics

BASE = "http://metrics.example.com"
URL = BASE + "/update/"


def _decode_ok(request):
    assert request.headers["Content-Encoding"] == "gzip"
    payload = json.loads(gzip.decompress(request.body))
    Metrics.from_dict(payload)
    return (200, {}, "")


def test_update_success():
    with responses.RequestsMock() as rsps:
        rsps.add_callback(responses.POST, URL, callback=_decode_ok)
        facade = MetricUpdateFacade(BASE)
        result = facade.update([Metrics(id="metric1", type=GAUGE, value=10.5)])
        assert result is None
        assert len(rsps.calls) == 1
        sent = json.loads(gzip.decompress(rsps.calls[0].request.body))
        assert sent == {"id": "metric1", "type": "gauge", "value": 10.5}
        assert rsps.calls[0].request.headers["Content-Type"] == "application/json"


@pytest.mark.parametrize(
    "metric",
    [
        Metrics(id="metric2", type=COUNTER, delta=5),
        Metrics(id="metric3", type=GAUGE, value=2.5),
    ],
)
def test_update_bad_request_response(metric):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, URL, status=400, body="bad request\n")
        facade = MetricUpdateFacade(BASE)
        with pytest.raises(MetricUpdateError) as info:
            facade.update([metric])
    assert "metrics update request failed: 400 Bad Request" in str(info.value)


def test_update_network_error():
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.POST,
            URL,
            body=requests.exceptions.ConnectionError("connection refused"),
        )
        facade = MetricUpdateFacade(BASE)
        with pytest.raises(MetricUpdateError) as info:
            facade.update([Metrics(id="metric4", type=COUNTER, delta=1)])
    assert "failed to send metrics update request:" in str(info.value)
    assert isinstance(info.value.__cause__, requests.exceptions.ConnectionError)


def test_update_missing_scheme_adds_http():
    with responses.RequestsMock() as rsps:
        rsps.add_callback(
            responses.POST, "http://localhost:8080/update/", callback=_decode_ok
        )
        facade = MetricUpdateFacade("localhost:8080")
        result = facade.update([Metrics(id="metric5", type=COUNTER, delta=100)])
        assert result is None
        assert rsps.calls[0].request.url == "http://localhost:8080/update/"


def test_update_sends_one_request_per_metric():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, URL, status=200)
        facade = MetricUpdateFacade(BASE)
        result = facade.update(
            [
                Metrics(id="a", type=GAUGE, value=1.0),
                Metrics(id="b", type=COUNTER, delta=2),
            ]
        )
        ids = [json.loads(gzip.decompress(c.request.body))["id"] for c in rsps.calls]
    assert result is None
    assert ids == ["a", "b"]


def test_update_stops_at_first_failure():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        rsps.add(responses.POST, URL, status=500)
        facade = MetricUpdateFacade(BASE)
        with pytest.raises(MetricUpdateError):
            facade.update(
                [
                    Metrics(id="a", type=GAUGE, value=1.0),
                    Metrics(id="b", type=GAUGE, value=2.0),
                ]
            )
        assert len(rsps.calls) == 1


def test_compress_metric_round_trip():
    metric = Metrics(id="testMetric", type=GAUGE, value=123.456)
    data = compress_metric(metric)
    assert data
    result = Metrics.from_dict(json.loads(gzip.decompress(data)))
    assert result.id == "testMetric"
    assert result.type == GAUGE
    assert result.value == 123.456


def test_compress_metric_empty():
    data = compress_metric(Metrics())
    assert data
    result = Metrics.from_dict(json.loads(gzip.decompress(data)))
    assert result == Metrics()