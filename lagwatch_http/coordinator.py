"""The HTTP coordinator: request routing, listeners and the admin endpoints."""

from __future__ import annotations

import functools
import ipaddress
import json
import logging
import re
import socket
import socketserver
import ssl
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
import queue
from urllib.parse import unquote, urlsplit

from . import config, kafka
from .responses import Request, Response, error_response, json_response, make_request_info
from .settings import Settings

Handler = Callable[..., Any]

NOT_FOUND_BODY = b'{"error":true,"message":"invalid request type","result":{}}\n'
_TEXT_HEADERS = {
    "Content-Type": "text/plain; charset=utf-8",
    "X-Content-Type-Options": "nosniff",
}
_INVALID_ADDRESS = "invalid HTTP server listener address"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
}
_LEVEL_ALIASES = {"trace": "debug", "warning": "warn"}

_HOSTNAME = re.compile(
    r"(?=.{1,253}$)[A-Za-z0-9_][A-Za-z0-9_-]{0,62}(\.[A-Za-z0-9_][A-Za-z0-9_-]{0,62})*\.?"
)
_PORT = re.compile(r"[0-9]{1,5}")


class LogLevel:
    """The application's adjustable log level, shared between threads."""

    def __init__(self, name: str = "info", logger: logging.Logger | None = None) -> None:
        self._lock = threading.Lock()
        self._logger = logger
        self._name = "info"
        self.set_level(name)

    def level(self) -> str:
        """Return the canonical name of the current level."""
        with self._lock:
            return self._name

    def set_level(self, name: str) -> None:
        """Change the level; names are case-insensitive and may be aliases.

        Raises ValueError for a name that is not a known level.
        """
        key = name.lower()
        key = _LEVEL_ALIASES.get(key, key)
        if key not in _LEVELS:
            raise ValueError(f"unknown log level: {name!r}")
        with self._lock:
            self._name = key
            if self._logger is not None:
                self._logger.setLevel(_LEVELS[key])


@dataclass
class AppContext:
    """What the coordinator shares with the rest of the application."""

    log_level: LogLevel = field(default_factory=LogLevel)
    storage_channel: queue.Queue = field(default_factory=queue.Queue)
    evaluator_channel: queue.Queue = field(default_factory=queue.Queue)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("lagwatch"))


@dataclass(frozen=True)
class _Route:
    segments: tuple[str, ...]
    handler: Handler

    @property
    def rank(self) -> tuple[bool, ...]:
        return tuple(segment.startswith(":") for segment in self.segments)

    @property
    def shape(self) -> tuple[str, ...]:
        return tuple(":" if s.startswith(":") else s for s in self.segments)

    def bind(self, parts: tuple[str, ...]) -> dict[str, str] | None:
        if len(parts) != len(self.segments):
            return None
        params: dict[str, str] = {}
        for pattern, part in zip(self.segments, parts):
            if pattern.startswith(":"):
                if not part:
                    return None
                params[pattern[1:]] = part
            elif pattern != part:
                return None
        return params


class Router:
    """Matches method and path against patterns with ``:name`` parameters.

    Where several patterns match, static segments win over parameters.
    """

    def __init__(self) -> None:
        self._routes: dict[str, list[_Route]] = {}

    def add(self, method: str, pattern: str, handler: Handler) -> None:
        """Register ``handler`` for ``method`` requests matching ``pattern``."""
        if not pattern.startswith("/"):
            raise ValueError(f"path must begin with '/': {pattern!r}")
        route = _Route(tuple(pattern.split("/")), handler)
        routes = self._routes.setdefault(method.upper(), [])
        if any(existing.shape == route.shape for existing in routes):
            raise ValueError(f"a handler is already registered for {method.upper()} {pattern}")
        routes.append(route)

    def match(self, method: str, path: str) -> tuple[Handler, dict[str, str]] | None:
        """Return the handler and path parameters for a request, or None."""
        parts = tuple(path.split("/"))
        for route in sorted(self._routes.get(method.upper(), ()), key=lambda r: r.rank):
            params = route.bind(parts)
            if params is not None:
                return route.handler, params
        return None

    def _allowed(self, path: str) -> list[str]:
        return sorted(method for method in self._routes if self.match(method, path) is not None)


@dataclass
class _Listener:
    address: str
    host: str
    port: int
    timeout: int
    ssl_context: ssl.SSLContext | None = None
    certfile: str = ""
    keyfile: str = ""


def _parse_address(address: str) -> tuple[str, int]:
    """Split ``host:port``; the host may be blank. Raises ValueError."""
    if address.startswith("["):
        end = address.find("]")
        if end < 0 or address[end + 1 : end + 2] != ":":
            raise ValueError(_INVALID_ADDRESS)
        host, port_text = address[1:end], address[end + 2 :]
        try:
            ipaddress.IPv6Address(host)
        except ValueError:
            raise ValueError(_INVALID_ADDRESS) from None
    else:
        host, sep, port_text = address.rpartition(":")
        if not sep or ":" in host:
            raise ValueError(_INVALID_ADDRESS)
        if host and not _HOSTNAME.fullmatch(host):
            raise ValueError(_INVALID_ADDRESS)
    if not _PORT.fullmatch(port_text) or int(port_text) > 65535:
        raise ValueError(_INVALID_ADDRESS)
    return host, int(port_text)


def _tls_context(settings: Settings, tls_name: str) -> tuple[ssl.SSLContext, str, str]:
    root = "tls." + tls_name
    certfile = settings.get_string(root + ".certfile")
    keyfile = settings.get_string(root + ".keyfile")
    cafile = settings.get_string(root + ".cafile")
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)

    if cafile:
        try:
            with open(cafile, "rb") as handle:
                ca_pem = handle.read()
        except OSError as exc:
            raise ValueError(f"cannot read TLS CA file: {exc}") from exc
        try:
            context.load_verify_locations(cadata=ca_pem.decode("ascii", errors="replace"))
        except (ssl.SSLError, ValueError):
            pass  # certificates that do not parse are ignored

    if not certfile or not keyfile:
        raise ValueError("TLS HTTP server specified with missing certificate or key")
    try:
        context.load_cert_chain(certfile, keyfile)
    except OSError as exc:
        raise ValueError(f"cannot read TLS certificate or key file: {exc}") from exc
    return context, certfile, keyfile


class _HTTPServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: tuple[str, int], handler: type, family: int, keepalive: int) -> None:
        self.address_family = family
        self.keepalive = keepalive
        super().__init__(address, handler)

    def server_bind(self) -> None:
        socketserver.TCPServer.server_bind(self)
        host, port = self.server_address[:2]
        self.server_name = host
        self.server_port = port

    def get_request(self) -> tuple[socket.socket, Any]:
        conn, addr = super().get_request()
        if self.keepalive > 0:
            conn.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
            if hasattr(socket, "TCP_KEEPIDLE"):
                conn.setsockopt(socket.IPPROTO_TCP, socket.TCP_KEEPIDLE, self.keepalive)
        return conn, addr


def _handler_class(coordinator: Coordinator, timeout: int) -> type:
    class _RequestHandler(BaseHTTPRequestHandler):
        protocol_version = "HTTP/1.1"

        def _serve(self) -> None:
            try:
                length = int(self.headers.get("Content-Length") or 0)
            except ValueError:
                self.send_error(400, "invalid Content-Length")
                return
            body = self.rfile.read(length) if length > 0 else b""
            parts = urlsplit(self.path)
            path = unquote(parts.path) + (f"?{parts.query}" if parts.query else "")
            response = coordinator.handle(self.command, path, body)
            self.send_response(response.status)
            for name, value in response.headers.items():
                self.send_header(name, value)
            self.send_header("Content-Length", str(len(response.body)))
            self.end_headers()
            if self.command != "HEAD":
                self.wfile.write(response.body)

        do_GET = do_POST = do_PUT = do_DELETE = do_PATCH = do_HEAD = do_OPTIONS = _serve

        def log_message(self, format: str, *args: Any) -> None:
            coordinator.log.debug("%s - %s", self.address_string(), format % args)

    _RequestHandler.timeout = timeout if timeout > 0 else None
    return _RequestHandler


def _decode_level(body: bytes) -> str | None:
    """Read the ``level`` field of a JSON body; None if it cannot be decoded."""
    try:
        text = body.decode("utf-8").lstrip(" \t\r\n")
        value, _ = json.JSONDecoder().raw_decode(text)
    except ValueError:
        return None
    if value is None:
        return ""
    if not isinstance(value, dict):
        return None
    if "level" in value:
        level = value["level"]
    else:
        level = next((item for key, item in value.items() if key.lower() == "level"), None)
    if level is None:
        return ""
    return level if isinstance(level, str) else None


class Coordinator:
    """Runs the HTTP interface, managing every configured listener."""

    def __init__(
        self,
        app: AppContext,
        settings: Settings | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.app = app
        self.settings = settings if settings is not None else Settings()
        self.log = log if log is not None else logging.getLogger(__name__)
        self.router = Router()
        self.addresses: dict[str, tuple[str, int]] = {}
        self._listeners: dict[str, _Listener] = {}
        self._servers: dict[str, _HTTPServer] = {}
        self._threads: list[threading.Thread] = []

    def configure(self) -> None:
        """Validate the listener configuration and set up the routes.

        Without any listener configured, one is added on a random port.
        Raises ValueError for an invalid configuration.
        """
        self.log.info("configuring")
        self.router = Router()
        settings = self.settings

        servers = settings.get_string_map("httpserver")
        if not servers:
            settings.set("httpserver.default.address", ":0")
            servers = settings.get_string_map("httpserver")

        listeners: dict[str, _Listener] = {}
        for name in servers:
            root = "httpserver." + name
            address = settings.get_string(root + ".address")
            host, port = _parse_address(address)
            settings.set_default(root + ".timeout", 300)
            listener = _Listener(address, host, port, settings.get_int(root + ".timeout"))
            if settings.is_set(root + ".tls"):
                context, certfile, keyfile = _tls_context(settings, settings.get_string(root + ".tls"))
                listener.ssl_context = context
                listener.certfile = certfile
                listener.keyfile = keyfile
            listeners[name] = listener
        self._listeners = listeners

        self._route("GET", "/burrow/admin", self._handle_admin)

        app_routes = [
            ("GET", "/v3/kafka", kafka.handle_cluster_list),
            ("GET", "/v3/kafka/:cluster", kafka.handle_cluster_detail),
            ("GET", "/v3/kafka/:cluster/topic", kafka.handle_topic_list),
            ("GET", "/v3/kafka/:cluster/topic/:topic", kafka.handle_topic_detail),
            ("GET", "/v3/kafka/:cluster/topic/:topic/consumers", kafka.handle_topic_consumer_list),
            ("GET", "/v3/kafka/:cluster/consumer", kafka.handle_consumer_list),
            ("GET", "/v3/kafka/:cluster/consumer/:consumer", kafka.handle_consumer_detail),
            ("GET", "/v3/kafka/:cluster/consumer/:consumer/status", kafka.handle_consumer_status),
            ("GET", "/v3/kafka/:cluster/consumer/:consumer/lag", kafka.handle_consumer_status_complete),
            ("GET", "/v3/config", config.config_main),
            ("GET", "/v3/config/storage", config.config_storage_list),
            ("GET", "/v3/config/storage/:name", config.config_storage_detail),
            ("GET", "/v3/config/evaluator", config.config_evaluator_list),
            ("GET", "/v3/config/evaluator/:name", config.config_evaluator_detail),
            ("GET", "/v3/config/cluster", config.config_cluster_list),
            ("GET", "/v3/config/cluster/:cluster", kafka.handle_cluster_detail),
            ("GET", "/v3/config/consumer", config.config_consumer_list),
            ("GET", "/v3/config/consumer/:name", config.config_consumer_detail),
            ("GET", "/v3/config/notifier", config.config_notifier_list),
            ("GET", "/v3/config/notifier/:name", config.config_notifier_detail),
            ("DELETE", "/v3/kafka/:cluster/consumer/:consumer", kafka.handle_consumer_delete),
        ]
        for method, pattern, handler in app_routes:
            self._route(method, pattern, functools.partial(handler, self.app, self.settings))

        self._route("GET", "/v3/admin/loglevel", self._get_log_level)
        self._route("POST", "/v3/admin/loglevel", self._set_log_level)

    def _route(self, method: str, pattern: str, handler: Handler) -> None:
        self.router.add(method, pattern, handler)

    def start(self) -> None:
        """Open every listener, then serve requests on each in the background.

        If any listener cannot be opened, those already opened are closed and
        the OSError is raised.
        """
        self.log.info("starting")
        servers: dict[str, _HTTPServer] = {}
        for name, listener in self._listeners.items():
            family = socket.AF_INET6 if ":" in listener.host else socket.AF_INET
            try:
                server = _HTTPServer(
                    (listener.host, listener.port),
                    _handler_class(self, listener.timeout),
                    family,
                    listener.timeout,
                )
            except OSError as exc:
                self.log.error("failed to listen on %s: %s", listener.address, exc)
                for opened in servers.values():
                    try:
                        opened.server_close()
                    except OSError as close_exc:
                        self.log.error("could not close listener: %s", close_exc)
                raise
            if listener.ssl_context is not None:
                server.socket = listener.ssl_context.wrap_socket(
                    server.socket, server_side=True, do_handshake_on_connect=False
                )
            servers[name] = server
            self.addresses[name] = tuple(server.server_address[:2])
            self.log.info("started listener %s", server.server_address[:2])

        for server in servers.values():
            thread = threading.Thread(target=server.serve_forever, daemon=True)
            thread.start()
            self._threads.append(thread)
        self._servers.update(servers)

    def stop(self) -> None:
        """Close every listener without waiting for requests in progress.

        Every listener is closed even if some fail; a RuntimeError is raised
        afterwards if any did.
        """
        self.log.info("shutdown")
        errors: list[str] = []
        for name, server in self._servers.items():
            try:
                server.shutdown()
                server.server_close()
            except OSError as exc:
                errors.append(f"{name}: {exc}")
        self._servers = {}
        threads, self._threads = self._threads, []
        for thread in threads:
            thread.join(timeout=5)
        if errors:
            self.log.error("errors shutting down: %s", "; ".join(errors))
            raise RuntimeError("error shutting down HTTP servers")

    def handle(self, method: str, path: str, body: bytes | str = b"") -> Response:
        """Route one request and return the response."""
        request = Request(method, path, body)
        match = self.router.match(request.method, request.path)
        if match is not None:
            handler, params = match
            return handler(request, params)

        allowed = self.router._allowed(request.path)
        if allowed:
            allow = ", ".join(allowed)
            if request.method == "OPTIONS":
                return Response(200, {"Allow": allow})
            return Response(405, {"Allow": allow, **_TEXT_HEADERS}, b"Method Not Allowed\n")

        if request.path != "/":
            alternative = request.path[:-1] if request.path.endswith("/") else request.path + "/"
            if self.router.match(request.method, alternative) is not None:
                location = alternative + (f"?{request.query}" if request.query else "")
                return Response(301 if request.method == "GET" else 307, {"Location": location})

        return Response(404, dict(_TEXT_HEADERS), NOT_FOUND_BODY)

    def _handle_admin(self, request: Request, params: dict[str, str]) -> Response:
        headers: dict[str, str] = {}
        origin = self.settings.get_string("general.access-control-allow-origin")
        if origin:
            headers["Access-Control-Allow-Origin"] = origin
        headers["Content-Type"] = "text/plain; charset=utf-8"
        return Response(200, headers, b"GOOD")

    def _get_log_level(self, request: Request, params: dict[str, str]) -> Response:
        return json_response(
            self.settings,
            200,
            {
                "error": False,
                "message": "log level returned",
                "level": self.app.log_level.level(),
                "request": make_request_info(request),
            },
        )

    def _set_log_level(self, request: Request, params: dict[str, str]) -> Response:
        level = _decode_level(request.body)
        if level is None:
            return error_response(self.settings, request, 400, "could not decode message body")
        try:
            self.app.log_level.set_level(level)
        except ValueError:
            return error_response(self.settings, request, 404, "unknown log level")
        return json_response(
            self.settings,
            200,
            {"error": False, "message": "set log level", "request": make_request_info(request)},
        )