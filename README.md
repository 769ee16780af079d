# lagwatch_http

An HTTP API for a Kafka consumer-lag monitor. It serves JSON endpoints for
the clusters, topics and consumer groups being watched, for the evaluated
status of each group, and for the configuration of every subsystem. It also
has a health check and a way to change the log level while running.

The package needs only the standard library at run time.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Usage

```python
from lagwatch_http.coordinator import AppContext, Coordinator, LogLevel
from lagwatch_http.settings import Settings

settings = Settings()
settings.set("httpserver.main.address", ":8000")
settings.set("cluster.local.class-name", "kafka")

app = AppContext(log_level=LogLevel("info"))
coordinator = Coordinator(app=app, settings=settings)
coordinator.configure()   # validates listeners, sets up routes
coordinator.start()       # one background server per listener
print(coordinator.addresses)  # {"main": ("", 8000)}
# ...
coordinator.stop()
```

- `configure()` raises `ValueError` when a listener address is invalid or a
  TLS profile is incomplete or unreadable. If no `httpserver` section is set,
  it adds a `default` listener on `:0`, which is a random free port. Each
  listener's `timeout` defaults to 300 seconds.
- `start()` opens every listener. If one cannot be opened, it closes those
  already opened and raises the `OSError`. The bound addresses are logged and
  stored in `Coordinator.addresses`.
- `stop()` closes every listener. If any of them failed to close, it raises
  `RuntimeError` after trying all of them.

A listener uses TLS when `httpserver.<name>.tls` names a profile. The profile
is read from `tls.<profile>.certfile`, `.keyfile` and, if given, `.cafile`.

You can dispatch a request without opening a socket:

```python
response = coordinator.handle("GET", "/burrow/admin")
assert response.status == 200 and response.text == "GOOD"
```

`Response.json()` decodes the body of a JSON response.

## Configuration

`Settings` holds dotted, case-insensitive keys. Values set with `set()` take
precedence over those set with `set_default()`. When you set `a.b.c`, the
keys `a` and `a.b` count as set too. The typed getters are `get_string`,
`get_int`, `get_bool`, `get_string_list`, `get_string_map` and
`get_string_map_string`. For a missing key they return an empty or zero
value.

## Storage and evaluator workers

This package is only the HTTP layer. It does not store offsets and does not
evaluate consumer status. Your own workers must read requests from the queues
on `AppContext` and answer them.

- `app.storage_channel` receives `lagwatch_http.kafka.StorageRequest` objects.
  Each one has a `request_type` (a `StorageRequestType`), plus `cluster`,
  `topic`, `group` and a `reply` queue.
  - Put the answer on `reply`. That is a list of names or offsets, or the
    consumer's topics mapping.
  - Put `None` on `reply` when the cluster, topic or group is not found. The
    client then gets a 404.
  - `SET_DELETE_GROUP` requests have `reply=None` and expect no answer.
- `app.evaluator_channel` receives `EvaluatorRequest` objects. Each one has
  `cluster`, `group`, `show_all` and a `reply` queue.
  - Answer with a status object or mapping that has a `status` member.
  - A status of `"NOTFOUND"`, or an enum member named `NOTFOUND`, makes the
    response a 404.

Answers are turned into JSON with `lagwatch_http.models.to_json_value`. That
function handles dataclasses, enums, mappings and sequences.

## Endpoints

| Method | Path | Purpose |
|--------|------|---------|
| GET | `/burrow/admin` | health check; returns `GOOD` |
| GET | `/v3/kafka` | list clusters |
| GET | `/v3/kafka/:cluster` | cluster configuration |
| GET | `/v3/kafka/:cluster/topic` | list topics |
| GET | `/v3/kafka/:cluster/topic/:topic` | partition offsets of a topic |
| GET | `/v3/kafka/:cluster/topic/:topic/consumers` | consumer groups of a topic |
| GET | `/v3/kafka/:cluster/consumer` | list consumer groups |
| GET | `/v3/kafka/:cluster/consumer/:consumer` | offsets of a consumer group |
| GET | `/v3/kafka/:cluster/consumer/:consumer/status` | evaluated group status |
| GET | `/v3/kafka/:cluster/consumer/:consumer/lag` | status with every partition |
| DELETE | `/v3/kafka/:cluster/consumer/:consumer` | remove a consumer group |
| GET | `/v3/config` | general, logging, ZooKeeper and listener configuration |
| GET | `/v3/config/{storage,evaluator,cluster,consumer,notifier}` | list modules of a subsystem |
| GET | `/v3/config/{storage,evaluator,cluster,consumer,notifier}/:name` | module detail |
| GET / POST | `/v3/admin/loglevel` | read or set the log level (`{"level": "debug"}`) |

### Log level

The accepted log levels are `debug`, `trace`, `info`, `warn`, `warning`,
`error` and `fatal`, in any case. `GET` returns the canonical name, one of
`debug`, `info`, `warn`, `error` or `fatal`.

`POST` returns an error in two cases:

- a body that cannot be decoded gets a 400;
- an unknown level gets a 404.

### Notifier detail

The shape of a notifier's detail follows its `class-name`: `http`, `email`,
`slack` or `null`. A notifier with any other class gets an empty 200 response.

### Errors and other responses

- An unknown path returns 404 with the body
  `{"error":true,"message":"invalid request type","result":{}}`.
- A known path with the wrong method returns 405 with an `Allow` header.
- `OPTIONS` on a known path returns 200 with an `Allow` header.
- A path that differs from a route only by a trailing slash is redirected:
  301 for `GET`, 307 for other methods.

When `general.access-control-allow-origin` is set, its value is sent as an
`Access-Control-Allow-Origin` header on every JSON response and on the health
check.

## Limitations

- The package has no command-line program. You start it from your own code,
  as shown above.
- It does not authenticate anyone. The `DELETE` endpoint and the log-level
  endpoint are open to any client that can reach the listener.