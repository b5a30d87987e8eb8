# metricd

Building blocks for a small metrics system that deals in two kinds of
metric:

- **gauge**: a floating-point value, replaced on each update;
- **counter**: an integer delta, added to the stored total on each update.

The package gives you the metric types, an in-memory store, the update,
get and list services, a client that pushes metrics to an HTTP server,
two WSGI middlewares, a lifecycle runner and the agent's poll-and-report
loop.

## Installation

```
pip install .
```

## Modules

### `metricd.types`

- `MetricID(id, type)`: a frozen identifier of a metric.
- `Metrics(id="", type="", delta=None, value=None, hash="")`: a metric.
  - `to_dict()` gives its JSON form and leaves out unset fields.
  - `Metrics.from_dict(data)` builds one from a JSON object. It raises
    `ValueError` on fields of the wrong type and on a `delta` outside the
    signed 64-bit range.
  - `key` is its `MetricID`.
- `COUNTER` and `GAUGE` are the two type names.
- `new_metric_id(metric_type, metric_name)` builds a `MetricID`.
- `new_metric(metric_type, metric_name, metric_value)` parses the value
  text for the given type: a float for gauges, a base-10 64-bit integer for
  counters. A value that does not parse is left unset.
- `metric_string_value(metric)` gives the value as text, for example
  `"42.42"` or `"100"`. It gives an empty string when the value is unset or
  the type is unknown.
- `metrics_html(metrics)` renders an HTML page with one `<li>name: value</li>`
  line per metric, HTML-escaped. A missing value is shown as `N/A`.

```python
from metricd.types import new_metric, metric_string_value

metric = new_metric("counter", "hits", "3")
print(metric_string_value(metric))  # 3
```

### `metricd.configs`

`AgentConfig` (`server_address`, `log_level`, `poll_interval`,
`report_interval`, `num_workers`) and `ServerConfig` (`address`,
`log_level`) are plain dataclasses. Their fields default to empty strings
and zeros.

### `metricd.logger`

- `initialize(level)` sets up the shared `metricd` logger. It writes one
  JSON object per line to standard error and returns the logger. Accepted
  levels are `debug`, `info`, `warn`, `error`, `dpanic`, `panic` and `fatal`,
  in lower or upper case, and the empty string, which means `info`. Any
  other level raises `ValueError`.
- `get_logger()` returns the shared logger. It stays silent until
  `initialize` has been called.

### `metricd.repositories`

`MetricMemoryRepository` is a thread-safe in-memory store keyed by
`MetricID`. It has these methods:

- `save(metric)`
- `get(metric_id)`, which returns `None` when nothing is stored under the id
- `list()`, which returns the metrics sorted by name
- `clear()`

It stores copies and returns copies.

### `metricd.services`

- `MetricUpdateService(saver, getter).update(metrics)` saves each metric in
  turn. Before a counter is saved, the stored delta is added to its own
  delta. The method returns the list.
- `MetricGetService(getter).get(metric_id)` returns a metric or `None`.
- `MetricListService(lister).list()` returns every metric.

A `MetricMemoryRepository` can serve as saver, getter and lister:

```python
from metricd.repositories import MetricMemoryRepository
from metricd.services import MetricUpdateService, MetricGetService
from metricd.types import new_metric, new_metric_id

repo = MetricMemoryRepository()
update = MetricUpdateService(repo, repo)
update.update([new_metric("counter", "hits", "3")])
update.update([new_metric("counter", "hits", "4")])
print(MetricGetService(repo).get(new_metric_id("counter", "hits")).delta)  # 7
```

### `metricd.facades`

- `MetricUpdateFacade(server_address, session=None, timeout=None)` sends
  metrics to `<server_address>/update/`. It adds `http://` when the address
  has no scheme.
- `update(metrics)` POSTs the metrics one at a time. Each body is
  gzip-compressed JSON, sent with `Content-Type: application/json` and
  `Content-Encoding: gzip`. The first connection failure raises
  `MetricUpdateError`, and so does the first response with a status above
  399, for example `metrics update request failed: 400 Bad Request`.
- `compress_metric(metric)` returns the gzip-compressed JSON of one metric.

### `metricd.middlewares`

Both middlewares wrap any WSGI application.

- `gzip_middleware(app)` decompresses request bodies sent with
  `Content-Encoding: gzip`. It answers `400 Bad Request` when such a body
  cannot be decompressed. When the client's `Accept-Encoding` contains
  `gzip`, it gzip-compresses the response.
- `logging_middleware(app)` logs each request's method, URI and duration,
  and the response's status and body size, through `get_logger()`.

### `metricd.runners`

- `Runnable` is a protocol with two methods: `start(stop_event)` and
  `stop(timeout)`.
- `run(runnable, stop_event=None)` calls `start` on a background thread and
  blocks. If `start` raises, `run` re-raises that error. When `stop_event` is
  set, or on SIGINT, SIGTERM or SIGQUIT when called from the main thread,
  it calls `stop(5.0)` and returns.

### `metricd.workers`

- `read_runtime_metrics()` returns one poll: memory gauges for the running
  interpreter, a `PollCount` counter of 1 and a `RandomValue` gauge.
- `collect_runtime_metrics(stop_event, poll_interval)` yields a poll every
  `poll_interval` seconds until it is stopped.
- `update_metrics(stop_event, report_interval, updater, source)` buffers
  metrics from `source` and hands the buffer to `updater.update` every
  `report_interval` seconds. It also sends the buffer when `source` ends and
  when a stop is requested. It yields every error raised.
- `log_errors(stop_event, errors)` logs the errors and returns how many it
  logged.
- `new_metric_agent_worker(updater, poll_interval, report_interval)`
  returns a worker function that ties the three together until its stop
  event is set.

A reporting agent put together from these parts looks like this:

```python
import threading

from metricd.facades import MetricUpdateFacade
from metricd.logger import initialize
from metricd.runners import run
from metricd.workers import new_metric_agent_worker


class Agent:
    def __init__(self, address: str) -> None:
        self._worker = new_metric_agent_worker(MetricUpdateFacade(address), 2, 10)

    def start(self, stop_event: threading.Event) -> None:
        self._worker(stop_event)

    def stop(self, timeout: float) -> None:
        pass


initialize("info")
run(Agent("localhost:8080"))
```

## What the package does not do

- It has no HTTP request handlers or URL routing. There is nothing that
  serves the `/update/` and `/value/` endpoints, and no ready-made server
  application. The middlewares and services are parts for building one.
- It has no validation of metric names, types or values beyond what
  `new_metric` and `Metrics.from_dict` do when they parse.
- It installs no command-line programs. Both the agent and a server have to
  be assembled in your own code, as in the example above.
- Metrics are kept in memory only and are lost when the process exits.

## Running the tests

```
pip install ".[test]"
pytest
```