import json
from enum import Enum

from lagwatch_http.models import (
    ClientProfile,
    ConfigHTTPServer,
    ConfigZookeeper,
    ModuleCluster,
    ModuleConsumer,
    NotifierEmail,
    NotifierHTTP,
    NotifierNull,
    RequestInfo,
    SASLProfile,
    TLSProfile,
    to_json_value,
)


def test_request_info_uses_url_key():
    value = to_json_value(RequestInfo(uri="/v3/kafka", host="node1"))
    assert value == {"url": "/v3/kafka", "host": "node1"}


def test_client_profile_keys_in_declaration_order():
    value = to_json_value(ClientProfile(name="test", client_id="testid"))
    assert list(value) == ["name", "client-id", "kafka-version", "tls", "sasl"]
    assert value["client-id"] == "testid"
    assert value["tls"] is None
    assert value["sasl"] is None


def test_nested_profiles_are_converted():
    profile = ClientProfile(
        name="p",
        tls=TLSProfile(name="t", certfile="c.pem", noverify=True),
        sasl=SASLProfile(name="s", handshake_first=True, username="alice"),
    )
    value = to_json_value(ModuleCluster(class_name="kafka", client_profile=profile))
    assert value["class-name"] == "kafka"
    assert value["client-profile"]["tls"]["certfile"] == "c.pem"
    assert value["client-profile"]["tls"]["noverify"] is True
    assert value["client-profile"]["sasl"]["handshake-first"] is True
    assert value["client-profile"]["sasl"]["username"] == "alice"


def test_notifier_extras_written_under_extra():
    value = to_json_value(NotifierHTTP(class_name="http", extras={"k": "v"}))
    assert value["extra"] == {"k": "v"}
    assert "extras" not in value


def test_email_sender_written_under_from():
    value = to_json_value(NotifierEmail(sender="alerts@example.com", to="ops@example.com"))
    assert value["from"] == "alerts@example.com"
    assert value["to"] == "ops@example.com"


def test_mapping_of_dataclasses():
    value = to_json_value({"default": ConfigHTTPServer(address=":0", timeout=300)})
    assert value == {"default": {"address": ":0", "tls": "", "timeout": 300}}


def test_enum_is_written_as_value():
    class Colour(Enum):
        RED = "red"

    assert to_json_value({"c": Colour.RED, Colour.RED: 1}) == {"c": "red", "red": 1}


def test_tuple_becomes_list():
    assert to_json_value((1, (2, 3))) == [1, [2, 3]]


def test_json_round_trip():
    module = ModuleConsumer(
        class_name="kafka_zk",
        servers=["a:9092", "b:9092"],
        client_profile=ClientProfile(name="test", client_id="testid"),
        zookeeper_timeout=30,
        start_latest=True,
    )
    value = to_json_value(module)
    assert json.loads(json.dumps(value)) == value
    assert value["servers"] == ["a:9092", "b:9092"]


def test_mutable_defaults_not_shared():
    first = ConfigZookeeper()
    first.servers.append("zk:2181")
    other = NotifierNull()
    other.extras["x"] = "y"
    assert ConfigZookeeper().servers == []
    assert NotifierNull().extras == {}


def test_plain_values_pass_through():
    marker = object()
    assert to_json_value(marker) is marker
    assert to_json_value(None) is None