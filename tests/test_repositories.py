import pytest

from metricd.repositories import MetricMemoryRepository
from metricd.types import COUNTER, GAUGE, MetricID, Metrics


@pytest.fixture
def repo():
    return MetricMemoryRepository()


def test_get_found_existing_metric(repo):
    existing = Metrics(id="metric1", type=COUNTER, delta=42)
    repo.save(existing)
    assert repo.get(MetricID(id="metric1", type=COUNTER)) == existing


def test_get_metric_not_found(repo):
    repo.save(Metrics(id="metric1", type=COUNTER, delta=42))
    assert repo.get(MetricID(id="not_exist", type=GAUGE)) is None


def test_get_distinguishes_types(repo):
    repo.save(Metrics(id="same", type=COUNTER, delta=1))
    assert repo.get(MetricID(id="same", type=GAUGE)) is None


def test_list_sorted_by_id(repo):
    metric1 = Metrics(id="metricB", type=GAUGE, value=3.14)
    metric2 = Metrics(id="metricA", type=COUNTER, delta=42)
    metric3 = Metrics(id="metricC", type=GAUGE, value=2.71)
    for metric in (metric1, metric2, metric3):
        repo.save(metric)
    assert repo.list() == [metric2, metric1, metric3]


def test_list_empty(repo):
    assert repo.list() == []


@pytest.mark.parametrize(
    "metric",
    [
        Metrics(id="metric1", type=COUNTER, delta=10),
        Metrics(id="metric2", type=GAUGE, value=3.14),
        Metrics(id="metric3", type=GAUGE),
    ],
)
def test_save_stores_metric(repo, metric):
    repo.save(metric)
    assert repo.get(MetricID(id=metric.id, type=metric.type)) == metric


def test_save_replaces_existing(repo):
    repo.save(Metrics(id="m", type=GAUGE, value=1.0))
    repo.save(Metrics(id="m", type=GAUGE, value=2.0))
    assert repo.list() == [Metrics(id="m", type=GAUGE, value=2.0)]


def test_stored_metric_is_independent_copy(repo):
    metric = Metrics(id="m", type=COUNTER, delta=1)
    repo.save(metric)
    metric.delta = 100
    fetched = repo.get(MetricID(id="m", type=COUNTER))
    fetched.delta = 50
    assert repo.get(MetricID(id="m", type=COUNTER)).delta == 1


def test_clear_removes_everything(repo):
    repo.save(Metrics(id="m", type=COUNTER, delta=1))
    repo.clear()
    assert repo.list() == []