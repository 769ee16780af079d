"""HTTP request and response records and JSON response building."""

from __future__ import annotations

import json
import socket
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

from .models import RequestInfo, to_json_value
from .settings import Settings

ENCODE_FAILURE_BODY = b'{"error":true,"message":"could not encode JSON","result":{}}'

_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


@dataclass
class Request:
    """An incoming HTTP request; a query string in ``path`` is split off."""

    method: str
    path: str
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)
    query: str = field(default="", init=False)

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        parts = urlsplit(self.path)
        self.path = parts.path
        self.query = parts.query
        if isinstance(self.body, str):
            self.body = self.body.encode("utf-8")


@dataclass
class Response:
    """An outgoing HTTP response."""

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")

    def json(self) -> Any:
        """Decode the body as JSON."""
        return json.loads(self.text)


def make_request_info(request: Request) -> RequestInfo:
    """Describe the request path and the host that served it."""
    return RequestInfo(uri=request.path, host=socket.gethostname())


def _encode(payload: Any) -> bytes:
    text = json.dumps(
        to_json_value(payload),
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )
    for char, escaped in _HTML_ESCAPES.items():
        text = text.replace(char, escaped)
    return text.encode("utf-8")


def json_response(settings: Settings, status: int, payload: Any) -> Response:
    """Build a JSON response, adding the CORS header when one is configured.

    A payload that cannot be encoded yields a 500 with a fixed error body.
    """
    headers: dict[str, str] = {}
    origin = settings.get_string("general.access-control-allow-origin")
    if origin:
        headers["Access-Control-Allow-Origin"] = origin
    headers["Content-Type"] = "application/json"
    try:
        body = _encode(payload)
    except (TypeError, ValueError):
        return Response(500, headers, ENCODE_FAILURE_BODY)
    return Response(status, headers, body)


def error_response(settings: Settings, request: Request, status: int, message: str) -> Response:
    """Build the standard error payload for ``request``."""
    return json_response(
        settings,
        status,
        {"error": True, "message": message, "request": make_request_info(request)},
    )