"""Response payload records and their conversion to JSON-ready values."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from typing import Any, Callable


def _json(name: str, default: Any = None, factory: Callable[[], Any] | None = None) -> Any:
    """Declare a dataclass field that is written under ``name`` in JSON."""
    meta = {"json": name}
    if factory is not None:
        return field(default_factory=factory, metadata=meta)
    return field(default=default, metadata=meta)


@dataclass
class RequestInfo:
    """The path that was requested and the host that answered it."""

    uri: str = _json("url", "")
    host: str = _json("host", "")


@dataclass
class TLSProfile:
    name: str = _json("name", "")
    noverify: bool = _json("noverify", False)
    certfile: str = _json("certfile", "")
    keyfile: str = _json("keyfile", "")
    cafile: str = _json("cafile", "")


@dataclass
class SASLProfile:
    name: str = _json("name", "")
    handshake_first: bool = _json("handshake-first", False)
    username: str = _json("username", "")


@dataclass
class ClientProfile:
    name: str = _json("name", "")
    client_id: str = _json("client-id", "")
    kafka_version: str = _json("kafka-version", "")
    tls: TLSProfile | None = _json("tls", None)
    sasl: SASLProfile | None = _json("sasl", None)


@dataclass
class ConfigGeneral:
    pidfile: str = _json("pidfile", "")
    stdout_logfile: str = _json("stdout-logfile", "")
    access_control_allow_origin: str = _json("access-control-allow-origin", "")


@dataclass
class ConfigLogging:
    filename: str = _json("filename", "")
    max_size: int = _json("max-size", 0)
    max_backups: int = _json("max-backups", 0)
    max_age: int = _json("max-age", 0)
    use_local_time: bool = _json("use-local-time", False)
    use_compression: bool = _json("use-compression", False)
    level: str = _json("level", "")


@dataclass
class ConfigZookeeper:
    servers: list[str] = _json("servers", factory=list)
    timeout: int = _json("timeout", 0)
    root_path: str = _json("root-path", "")


@dataclass
class ConfigHTTPServer:
    address: str = _json("address", "")
    tls: str = _json("tls", "")
    timeout: int = _json("timeout", 0)


@dataclass
class ModuleStorage:
    class_name: str = _json("class-name", "")
    intervals: int = _json("intervals", 0)
    min_distance: int = _json("min-distance", 0)
    group_whitelist: str = _json("group-whitelist", "")
    expire_group: int = _json("expire-group", 0)


@dataclass
class ModuleCluster:
    class_name: str = _json("class-name", "")
    servers: list[str] = _json("servers", factory=list)
    client_profile: ClientProfile = _json("client-profile", factory=ClientProfile)
    topic_refresh: int = _json("topic-refresh", 0)
    offset_refresh: int = _json("offset-refresh", 0)


@dataclass
class ModuleConsumer:
    class_name: str = _json("class-name", "")
    cluster: str = _json("cluster", "")
    servers: list[str] = _json("servers", factory=list)
    group_whitelist: str = _json("group-whitelist", "")
    zookeeper_path: str = _json("zookeeper-path", "")
    zookeeper_timeout: int = _json("zookeeper-timeout", 0)
    client_profile: ClientProfile = _json("client-profile", factory=ClientProfile)
    offsets_topic: str = _json("offsets-topic", "")
    start_latest: bool = _json("start-latest", False)


@dataclass
class ModuleEvaluator:
    class_name: str = _json("class-name", "")
    expire_cache: int = _json("expire-cache", 0)


@dataclass
class NotifierHTTP:
    class_name: str = _json("class-name", "")
    group_whitelist: str = _json("group-whitelist", "")
    interval: int = _json("interval", 0)
    threshold: int = _json("threshold", 0)
    timeout: int = _json("timeout", 0)
    keepalive: int = _json("keepalive", 0)
    url_open: str = _json("url-open", "")
    url_close: str = _json("url-close", "")
    method_open: str = _json("method-open", "")
    method_close: str = _json("method-close", "")
    template_open: str = _json("template-open", "")
    template_close: str = _json("template-close", "")
    extras: dict[str, str] = _json("extra", factory=dict)
    send_close: bool = _json("send-close", False)
    extra_ca: str = _json("extra-ca", "")
    noverify: str = _json("noverify", "")


@dataclass
class NotifierSlack:
    class_name: str = _json("class-name", "")
    group_whitelist: str = _json("group-whitelist", "")
    interval: int = _json("interval", 0)
    threshold: int = _json("threshold", 0)
    timeout: int = _json("timeout", 0)
    keepalive: int = _json("keepalive", 0)
    template_open: str = _json("template-open", "")
    template_close: str = _json("template-close", "")
    extras: dict[str, str] = _json("extra", factory=dict)
    send_close: bool = _json("send-close", False)
    channel: str = _json("channel", "")
    username: str = _json("username", "")
    icon_url: str = _json("icon-url", "")
    icon_emoji: str = _json("icon-emoji", "")


@dataclass
class NotifierEmail:
    class_name: str = _json("class-name", "")
    group_whitelist: str = _json("group-whitelist", "")
    interval: int = _json("interval", 0)
    threshold: int = _json("threshold", 0)
    template_open: str = _json("template-open", "")
    template_close: str = _json("template-close", "")
    extras: dict[str, str] = _json("extra", factory=dict)
    send_close: bool = _json("send-close", False)
    server: str = _json("server", "")
    port: int = _json("port", 0)
    auth_type: str = _json("auth-type", "")
    username: str = _json("username", "")
    sender: str = _json("from", "")
    to: str = _json("to", "")
    extra_ca: str = _json("extra-ca", "")
    noverify: str = _json("noverify", "")


@dataclass
class NotifierNull:
    class_name: str = _json("class-name", "")
    group_whitelist: str = _json("group-whitelist", "")
    interval: int = _json("interval", 0)
    threshold: int = _json("threshold", 0)
    template_open: str = _json("template-open", "")
    template_close: str = _json("template-close", "")
    extras: dict[str, str] = _json("extra", factory=dict)
    send_close: bool = _json("send-close", False)


def _json_key(key: Any) -> Any:
    if isinstance(key, Enum):
        key = key.value
    return key if isinstance(key, str) else str(key)


def to_json_value(obj: Any) -> Any:
    """Turn dataclasses, enums, mappings and sequences into plain JSON values.

    Dataclass fields are written under the name in their ``json`` metadata, in
    declaration order. Anything that is not recognised is returned unchanged.
    """
    if is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.metadata.get("json", f.name): to_json_value(getattr(obj, f.name))
            for f in fields(obj)
        }
    if isinstance(obj, Enum):
        return to_json_value(obj.value)
    if isinstance(obj, Mapping):
        return {_json_key(k): to_json_value(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_json_value(item) for item in obj]
    return obj