"""Handlers for the cluster, topic and consumer endpoints.

Each handler sends a request to the storage or evaluator subsystem through
a queue on the application context, waits for the reply, and builds the
JSON response.
"""

from __future__ import annotations

import queue
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .models import ClientProfile, ModuleCluster, SASLProfile, TLSProfile, to_json_value
from .responses import Request, Response, error_response, json_response, make_request_info
from .settings import Settings

STATUS_NOT_FOUND = "NOTFOUND"


class StorageRequestType(Enum):
    """The kinds of request the storage subsystem answers."""

    FETCH_CLUSTERS = "StorageFetchClusters"
    FETCH_TOPICS = "StorageFetchTopics"
    FETCH_TOPIC = "StorageFetchTopic"
    FETCH_CONSUMERS_FOR_TOPIC = "StorageFetchConsumersForTopic"
    FETCH_CONSUMERS = "StorageFetchConsumers"
    FETCH_CONSUMER = "StorageFetchConsumer"
    SET_DELETE_GROUP = "StorageSetDeleteGroup"


@dataclass
class StorageRequest:
    """A request to storage; ``reply`` is None when no answer is wanted."""

    request_type: StorageRequestType
    cluster: str = ""
    topic: str = ""
    group: str = ""
    reply: queue.Queue | None = None


@dataclass
class EvaluatorRequest:
    """A request for the evaluated status of a consumer group."""

    cluster: str
    group: str
    show_all: bool = False
    reply: queue.Queue = field(default_factory=queue.Queue)


def _ask(channel: Any, request: StorageRequest | EvaluatorRequest) -> Any:
    channel.put(request)
    return request.reply.get()


def _fetch(app: Any, request_type: StorageRequestType, **kwargs: str) -> Any:
    request = StorageRequest(request_type, reply=queue.Queue(), **kwargs)
    return _ask(app.storage_channel, request)


def get_tls_profile(settings: Settings, name: str) -> TLSProfile | None:
    """Return the named TLS profile, or None if it is not configured."""
    root = "tls." + name
    if not settings.is_set(root):
        return None
    return TLSProfile(
        name=name,
        certfile=settings.get_string(root + ".certfile"),
        keyfile=settings.get_string(root + ".keyfile"),
        cafile=settings.get_string(root + ".cafile"),
        noverify=settings.get_bool(root + ".noverify"),
    )


def get_sasl_profile(settings: Settings, name: str) -> SASLProfile | None:
    """Return the named SASL profile, or None if it is not configured."""
    root = "sasl." + name
    if not settings.is_set(root):
        return None
    return SASLProfile(
        name=name,
        handshake_first=settings.get_bool(root + ".handshake-first"),
        username=settings.get_string(root + ".username"),
    )


def get_client_profile(settings: Settings, name: str) -> ClientProfile:
    """Return the named client profile with its TLS and SASL profiles."""
    root = "client-profile." + name
    return ClientProfile(
        name=name,
        client_id=settings.get_string(root + ".client-id"),
        kafka_version=settings.get_string(root + ".kafka-version"),
        tls=get_tls_profile(settings, settings.get_string(root + ".tls")),
        sasl=get_sasl_profile(settings, settings.get_string(root + ".sasl")),
    )


def _ok(settings: Settings, request: Request, message: str, key: str, value: Any) -> Response:
    return json_response(
        settings,
        200,
        {
            "error": False,
            "message": message,
            key: value,
            "request": make_request_info(request),
        },
    )


def handle_cluster_list(app: Any, settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    clusters = _fetch(app, StorageRequestType.FETCH_CLUSTERS)
    return _ok(settings, request, "cluster list returned", "clusters", list(clusters))


def handle_cluster_detail(app: Any, settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    root = "cluster." + params.get("cluster", "")
    if not settings.is_set(root):
        return error_response(settings, request, 404, "cluster module not found")
    module = ModuleCluster(
        class_name=settings.get_string(root + ".class-name"),
        servers=settings.get_string_list(root + ".servers"),
        topic_refresh=settings.get_int(root + ".topic-refresh"),
        offset_refresh=settings.get_int(root + ".offset-refresh"),
        client_profile=get_client_profile(settings, settings.get_string(root + ".client-profile")),
    )
    return _ok(settings, request, "cluster module detail returned", "module", module)


def handle_topic_list(app: Any, settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    topics = _fetch(app, StorageRequestType.FETCH_TOPICS, cluster=params.get("cluster", ""))
    if topics is None:
        return error_response(settings, request, 404, "cluster not found")
    return _ok(settings, request, "topic list returned", "topics", list(topics))


def handle_topic_detail(app: Any, settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    offsets = _fetch(
        app,
        StorageRequestType.FETCH_TOPIC,
        cluster=params.get("cluster", ""),
        topic=params.get("topic", ""),
    )
    if offsets is None:
        return error_response(settings, request, 404, "cluster or topic not found")
    return _ok(settings, request, "topic offsets returned", "offsets", list(offsets))


def handle_topic_consumer_list(app: Any, settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    consumers = _fetch(
        app,
        StorageRequestType.FETCH_CONSUMERS_FOR_TOPIC,
        cluster=params.get("cluster", ""),
        topic=params.get("topic", ""),
    )
    if consumers is None:
        return error_response(settings, request, 404, "cluster not found")
    return _ok(settings, request, "consumers of topic returned", "consumers", list(consumers))


def handle_consumer_list(app: Any, settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    consumers = _fetch(app, StorageRequestType.FETCH_CONSUMERS, cluster=params.get("cluster", ""))
    if consumers is None:
        return error_response(settings, request, 404, "cluster not found")
    return _ok(settings, request, "consumer list returned", "consumers", list(consumers))


def handle_consumer_detail(app: Any, settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    topics = _fetch(
        app,
        StorageRequestType.FETCH_CONSUMER,
        cluster=params.get("cluster", ""),
        group=params.get("consumer", ""),
    )
    if topics is None:
        return error_response(settings, request, 404, "cluster or consumer not found")
    return _ok(settings, request, "consumer detail returned", "topics", topics)


def _is_not_found(status_result: Any) -> bool:
    if isinstance(status_result, Mapping):
        status = status_result.get("status")
    else:
        status = getattr(status_result, "status", None)
    if isinstance(status, Enum) and status.name == STATUS_NOT_FOUND:
        return True
    return to_json_value(status) == STATUS_NOT_FOUND


def _consumer_status(
    app: Any, settings: Settings, request: Request, params: Mapping[str, str], show_all: bool
) -> Response:
    evaluation = EvaluatorRequest(
        cluster=params.get("cluster", ""),
        group=params.get("consumer", ""),
        show_all=show_all,
    )
    result = _ask(app.evaluator_channel, evaluation)
    status_code = 404 if _is_not_found(result) else 200
    return json_response(
        settings,
        status_code,
        {
            "error": False,
            "message": "consumer status returned",
            "status": result,
            "request": make_request_info(request),
        },
    )


def handle_consumer_status(app: Any, settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    return _consumer_status(app, settings, request, params, show_all=False)


def handle_consumer_status_complete(
    app: Any, settings: Settings, request: Request, params: Mapping[str, str]
) -> Response:
    return _consumer_status(app, settings, request, params, show_all=True)


def handle_consumer_delete(app: Any, settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    app.storage_channel.put(
        StorageRequest(
            StorageRequestType.SET_DELETE_GROUP,
            cluster=params.get("cluster", ""),
            group=params.get("consumer", ""),
        )
    )
    return json_response(
        settings,
        200,
        {"error": False, "message": "consumer group removed", "request": make_request_info(request)},
    )