import logging
import socket
import threading
import urllib.error
import urllib.request

import pytest

from lagwatch_http.coordinator import AppContext, Coordinator, LogLevel, Router
from lagwatch_http.kafka import StorageRequestType
from lagwatch_http.settings import Settings


@pytest.fixture
def coordinator():
    coord = Coordinator(AppContext(), Settings())
    coord.configure()
    return coord


def test_handle_admin(coordinator):
    response = coordinator.handle("GET", "/burrow/admin")
    assert response.status == 200
    assert response.body == b"GOOD"


def test_admin_cors_header(coordinator):
    coordinator.settings.set("general.access-control-allow-origin", "*")
    response = coordinator.handle("GET", "/burrow/admin")
    assert response.headers["Access-Control-Allow-Origin"] == "*"


def test_get_log_level(coordinator):
    response = coordinator.handle("GET", "/v3/admin/loglevel")
    assert response.status == 200
    data = response.json()
    assert data["error"] is False
    assert data["level"] == "info"
    assert data["request"]["url"] == "/v3/admin/loglevel"


def test_set_log_level(coordinator):
    response = coordinator.handle("POST", "/v3/admin/loglevel", '{"level": "debug"}')
    assert response.status == 200
    assert response.json()["error"] is False
    assert coordinator.app.log_level.level() == "debug"
    assert coordinator.handle("GET", "/v3/admin/loglevel").json()["level"] == "debug"


@pytest.mark.parametrize(
    "name, expected",
    [("trace", "debug"), ("INFO", "info"), ("warning", "warn"), ("warn", "warn"), ("error", "error"), ("fatal", "fatal")],
)
def test_set_log_level_aliases(coordinator, name, expected):
    response = coordinator.handle("POST", "/v3/admin/loglevel", f'{{"level": "{name}"}}')
    assert response.status == 200
    assert coordinator.app.log_level.level() == expected


def test_set_log_level_unknown(coordinator):
    response = coordinator.handle("POST", "/v3/admin/loglevel", '{"level": "loud"}')
    assert response.status == 404
    data = response.json()
    assert data["error"] is True
    assert data["message"] == "unknown log level"
    assert coordinator.app.log_level.level() == "info"


@pytest.mark.parametrize("body", ["", "not json", "[1]", '{"level": 5}'])
def test_set_log_level_bad_body(coordinator, body):
    response = coordinator.handle("POST", "/v3/admin/loglevel", body)
    assert response.status == 400
    assert response.json()["message"] == "could not decode message body"


def test_default_handler(coordinator):
    response = coordinator.handle("GET", "/v3/no/such/uri")
    assert response.status == 404
    assert response.json()["error"] is True


def test_method_not_allowed(coordinator):
    response = coordinator.handle("PUT", "/burrow/admin")
    assert response.status == 405
    assert response.headers["Allow"] == "GET"


def test_allow_lists_every_method(coordinator):
    response = coordinator.handle("PUT", "/v3/kafka/c/consumer/g")
    assert response.headers["Allow"] == "DELETE, GET"


def test_trailing_slash_redirect(coordinator):
    response = coordinator.handle("GET", "/v3/kafka/?x=1")
    assert response.status == 301
    assert response.headers["Location"] == "/v3/kafka?x=1"


def test_cluster_list_routed_to_storage(coordinator):
    seen = []

    def answer():
        request = coordinator.app.storage_channel.get(timeout=5)
        seen.append(request.request_type)
        request.reply.put(["testcluster"])

    worker = threading.Thread(target=answer)
    worker.start()
    response = coordinator.handle("GET", "/v3/kafka")
    worker.join(timeout=5)
    assert response.status == 200
    assert response.json()["clusters"] == ["testcluster"]
    assert seen == [StorageRequestType.FETCH_CLUSTERS]


def test_config_routes_registered(coordinator):
    coordinator.settings.set("storage.teststorage.class-name", "inmemory")
    response = coordinator.handle("GET", "/v3/config/storage")
    assert response.status == 200
    assert response.json()["modules"] == ["teststorage"]


def test_configure_adds_default_listener():
    settings = Settings()
    Coordinator(AppContext(), settings).configure()
    assert settings.get_string("httpserver.default.address") == ":0"
    assert settings.get_int("httpserver.default.timeout") == 300


@pytest.mark.parametrize("address", ["nohostport", "host:99999", "a:b:1", "[::1]80", "bad host:80"])
def test_configure_rejects_invalid_address(address):
    settings = Settings()
    settings.set("httpserver.x.address", address)
    with pytest.raises(ValueError, match="invalid HTTP server listener address"):
        Coordinator(AppContext(), settings).configure()


def test_configure_tls_missing_certificate():
    settings = Settings()
    settings.set("httpserver.x.address", ":0")
    settings.set("httpserver.x.tls", "mytls")
    settings.set("tls.mytls.keyfile", "key.pem")
    with pytest.raises(ValueError, match="missing certificate or key"):
        Coordinator(AppContext(), settings).configure()


def test_configure_tls_unreadable_ca(tmp_path):
    settings = Settings()
    settings.set("httpserver.x.address", ":0")
    settings.set("httpserver.x.tls", "mytls")
    settings.set("tls.mytls.cafile", str(tmp_path / "missing.pem"))
    with pytest.raises(ValueError, match="cannot read TLS CA file"):
        Coordinator(AppContext(), settings).configure()


def test_configure_tls_unreadable_certificate(tmp_path):
    settings = Settings()
    settings.set("httpserver.x.address", ":0")
    settings.set("httpserver.x.tls", "mytls")
    settings.set("tls.mytls.certfile", str(tmp_path / "cert.pem"))
    settings.set("tls.mytls.keyfile", str(tmp_path / "key.pem"))
    with pytest.raises(ValueError, match="cannot read TLS certificate or key file"):
        Coordinator(AppContext(), settings).configure()


def test_start_serves_and_stop_closes():
    settings = Settings()
    settings.set("httpserver.local.address", "127.0.0.1:0")
    coord = Coordinator(AppContext(), settings)
    coord.configure()
    coord.start()
    try:
        host, port = coord.addresses["local"]
        assert host == "127.0.0.1"
        with urllib.request.urlopen(f"http://127.0.0.1:{port}/burrow/admin", timeout=5) as reply:
            assert reply.read() == b"GOOD"
        with pytest.raises(urllib.error.HTTPError) as caught:
            urllib.request.urlopen(f"http://127.0.0.1:{port}/nothing/here", timeout=5)
        assert caught.value.code == 404
    finally:
        coord.stop()
    with pytest.raises(OSError):
        urllib.request.urlopen(f"http://127.0.0.1:{port}/burrow/admin", timeout=5)


def test_start_fails_when_port_in_use():
    blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    blocker.bind(("127.0.0.1", 0))
    blocker.listen()
    try:
        port = blocker.getsockname()[1]
        settings = Settings()
        settings.set("httpserver.busy.address", f"127.0.0.1:{port}")
        coord = Coordinator(AppContext(), settings)
        coord.configure()
        with pytest.raises(OSError):
            coord.start()
    finally:
        blocker.close()


def test_router_params_and_static_priority():
    router = Router()
    router.add("GET", "/a/:x", "param")
    router.add("GET", "/a/b", "static")
    assert router.match("GET", "/a/b") == ("static", {})
    assert router.match("GET", "/a/c") == ("param", {"x": "c"})
    assert router.match("POST", "/a/c") is None
    assert router.match("GET", "/a/") is None


def test_router_rejects_duplicates_and_bad_patterns():
    router = Router()
    router.add("GET", "/a/:x", "first")
    with pytest.raises(ValueError):
        router.add("GET", "/a/:y", "second")
    with pytest.raises(ValueError):
        router.add("GET", "a/b", "third")


def test_log_level_default_and_changes():
    level = LogLevel()
    assert level.level() == "info"
    level.set_level("WARNING")
    assert level.level() == "warn"
    with pytest.raises(ValueError):
        level.set_level("verbose")
    assert level.level() == "warn"


def test_log_level_applies_to_logger():
    logger = logging.getLogger("lagwatch-coordinator-test")
    level = LogLevel("info", logger)
    assert logger.level == logging.INFO
    level.set_level("error")
    assert logger.level == logging.ERROR