"""Handlers for the configuration endpoints.

They report the running configuration: the general, logging, ZooKeeper and
listener sections, the modules configured for each subsystem, and the
details of one module.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .kafka import get_client_profile
from .models import (
    ConfigGeneral,
    ConfigHTTPServer,
    ConfigLogging,
    ConfigZookeeper,
    ModuleConsumer,
    ModuleEvaluator,
    ModuleStorage,
    NotifierEmail,
    NotifierHTTP,
    NotifierNull,
    NotifierSlack,
)
from .responses import Request, Response, error_response, json_response, make_request_info
from .settings import Settings


def _int32(value: int) -> int:
    """Wrap ``value`` into the signed 32-bit range."""
    return ((value + 2**31) % 2**32) - 2**31


def config_main(app: Any, settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    """Return the general, logging, ZooKeeper and listener configuration."""
    general = ConfigGeneral(
        pidfile=settings.get_string("general.pidfile"),
        stdout_logfile=settings.get_string("general.stdout-logfile"),
        access_control_allow_origin=settings.get_string("general.access-control-allow-origin"),
    )
    logging_config = ConfigLogging(
        filename=settings.get_string("logging.filename"),
        max_size=settings.get_int("logging.maxsize"),
        max_backups=settings.get_int("logging.maxbackups"),
        max_age=settings.get_int("logging.maxage"),
        use_local_time=settings.get_bool("logging.use-localtime"),
        use_compression=settings.get_bool("logging.use-compression"),
        level=settings.get_string("logging.level"),
    )
    zookeeper = ConfigZookeeper(
        servers=settings.get_string_list("zookeeper.servers"),
        timeout=settings.get_int("zookeeper.timeout"),
        root_path=settings.get_string("zookeeper.root-path"),
    )
    servers = {
        name: ConfigHTTPServer(
            address=settings.get_string(f"httpserver.{name}.address"),
            timeout=settings.get_int(f"httpserver.{name}.timeout"),
            tls=settings.get_string(f"httpserver.{name}.tls"),
        )
        for name in settings.get_string_map("httpserver")
    }
    return json_response(
        settings,
        200,
        {
            "error": False,
            "message": "main config returned",
            "request": make_request_info(request),
            "general": general,
            "logging": logging_config,
            "zookeeper": zookeeper,
            "httpserver": servers,
        },
    )


def _module_list(settings: Settings, request: Request, coordinator: str) -> Response:
    return json_response(
        settings,
        200,
        {
            "error": False,
            "message": "module list returned",
            "request": make_request_info(request),
            "coordinator": coordinator,
            "modules": list(settings.get_string_map(coordinator)),
        },
    )


def config_storage_list(app: Any, settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    return _module_list(settings, request, "storage")


def config_consumer_list(app: Any, settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    return _module_list(settings, request, "consumer")


def config_cluster_list(app: Any, settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    return _module_list(settings, request, "cluster")


def config_evaluator_list(app: Any, settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    return _module_list(settings, request, "evaluator")


def config_notifier_list(app: Any, settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    return _module_list(settings, request, "notifier")


def _module_detail(settings: Settings, request: Request, kind: str, module: Any) -> Response:
    return json_response(
        settings,
        200,
        {
            "error": False,
            "message": f"{kind} module detail returned",
            "module": module,
            "request": make_request_info(request),
        },
    )


def config_storage_detail(app: Any, settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    root = "storage." + params.get("name", "")
    if not settings.is_set(root):
        return error_response(settings, request, 404, "storage module not found")
    module = ModuleStorage(
        class_name=settings.get_string(root + ".class-name"),
        intervals=settings.get_int(root + ".intervals"),
        min_distance=settings.get_int(root + ".min-distance"),
        group_whitelist=settings.get_string(root + ".group-whitelist"),
        expire_group=settings.get_int(root + ".expire-group"),
    )
    return _module_detail(settings, request, "storage", module)


def config_consumer_detail(app: Any, settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    root = "consumer." + params.get("name", "")
    if not settings.is_set(root):
        return error_response(settings, request, 404, "consumer module not found")
    module = ModuleConsumer(
        class_name=settings.get_string(root + ".class-name"),
        cluster=settings.get_string(root + ".cluster"),
        servers=settings.get_string_list(root + ".servers"),
        group_whitelist=settings.get_string(root + ".group-whitelist"),
        zookeeper_path=settings.get_string(root + ".zookeeper-path"),
        zookeeper_timeout=_int32(settings.get_int(root + ".zookeeper-timeout")),
        client_profile=get_client_profile(settings, settings.get_string(root + ".client-profile")),
        offsets_topic=settings.get_string(root + ".offsets-topic"),
        start_latest=settings.get_bool(root + ".start-latest"),
    )
    return _module_detail(settings, request, "consumer", module)


def config_evaluator_detail(app: Any, settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    root = "evaluator." + params.get("name", "")
    if not settings.is_set(root):
        return error_response(settings, request, 404, "evaluator module not found")
    module = ModuleEvaluator(
        class_name=settings.get_string(root + ".class-name"),
        expire_cache=settings.get_int(root + ".expire-cache"),
    )
    return _module_detail(settings, request, "evaluator", module)


def _notifier_common(settings: Settings, root: str) -> dict[str, Any]:
    return {
        "class_name": settings.get_string(root + ".class-name"),
        "group_whitelist": settings.get_string(root + ".group-whitelist"),
        "interval": settings.get_int(root + ".interval"),
        "threshold": settings.get_int(root + ".threshold"),
        "template_open": settings.get_string(root + ".template-open"),
        "template_close": settings.get_string(root + ".template-close"),
        "extras": settings.get_string_map_string(root + ".extras"),
        "send_close": settings.get_bool(root + ".send-close"),
    }


def _notifier_http(settings: Settings, root: str) -> NotifierHTTP:
    return NotifierHTTP(
        **_notifier_common(settings, root),
        timeout=settings.get_int(root + ".timeout"),
        keepalive=settings.get_int(root + ".keepalive"),
        url_open=settings.get_string(root + ".url-open"),
        url_close=settings.get_string(root + ".url-close"),
        method_open=settings.get_string(root + ".method-open"),
        method_close=settings.get_string(root + ".method-close"),
        extra_ca=settings.get_string(root + ".extra-ca"),
        noverify=settings.get_string(root + ".noverify"),
    )


def _notifier_email(settings: Settings, root: str) -> NotifierEmail:
    return NotifierEmail(
        **_notifier_common(settings, root),
        server=settings.get_string(root + ".server"),
        port=settings.get_int(root + ".port"),
        auth_type=settings.get_string(root + ".auth-type"),
        username=settings.get_string(root + ".username"),
        sender=settings.get_string(root + ".from"),
        to=settings.get_string(root + ".to"),
        extra_ca=settings.get_string(root + ".extra-ca"),
        noverify=settings.get_string(root + ".noverify"),
    )


def _notifier_slack(settings: Settings, root: str) -> NotifierSlack:
    return NotifierSlack(
        **_notifier_common(settings, root),
        timeout=settings.get_int(root + ".timeout"),
        keepalive=settings.get_int(root + ".keepalive"),
        channel=settings.get_string(root + ".channel"),
        username=settings.get_string(root + ".username"),
        icon_url=settings.get_string(root + ".icon-url"),
        icon_emoji=settings.get_string(root + ".icon-emoji"),
    )


def _notifier_null(settings: Settings, root: str) -> NotifierNull:
    return NotifierNull(**_notifier_common(settings, root))


_NOTIFIER_BUILDERS = {
    "http": _notifier_http,
    "email": _notifier_email,
    "slack": _notifier_slack,
    "null": _notifier_null,
}


def config_notifier_detail(app: Any, settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    """Return a notifier's details in the shape of its class.

    A notifier whose class is not recognised gets an empty 200 response.
    """
    root = "notifier." + params.get("name", "")
    if not settings.is_set(root):
        return error_response(settings, request, 404, "notifier module not found")
    builder = _NOTIFIER_BUILDERS.get(settings.get_string(root + ".class-name"))
    if builder is None:
        return Response(200)
    return _module_detail(settings, request, "notifier", builder(settings, root))