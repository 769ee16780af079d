import pytest

from lagwatch_http.settings import Settings


@pytest.fixture
def settings():
    return Settings()


def test_set_and_get_nested(settings):
    settings.set("storage.teststorage.class-name", "inmemory")
    assert settings.get_string("storage.teststorage.class-name") == "inmemory"
    assert settings.is_set("storage.teststorage")
    assert settings.is_set("storage")
    assert not settings.is_set("storage.other")


def test_keys_are_case_insensitive(settings):
    settings.set("Cluster.TestCluster.Class-Name", "kafka")
    assert settings.get_string("cluster.testcluster.class-name") == "kafka"
    assert settings.get_string_map("cluster") == {"testcluster": {"class-name": "kafka"}}


def test_mapping_value_keys_are_lowercased(settings):
    settings.set("notifier.n1.extras", {"Team": "ops"})
    assert settings.get_string_map_string("notifier.n1.extras") == {"team": "ops"}


def test_default_used_when_not_overridden(settings):
    settings.set_default("httpserver.default.timeout", 300)
    assert settings.get_int("httpserver.default.timeout") == 300
    settings.set("httpserver.default.timeout", 10)
    assert settings.get_int("httpserver.default.timeout") == 10


def test_maps_merge_defaults_beneath_overrides(settings):
    settings.set("httpserver.default.address", ":0")
    settings.set_default("httpserver.default.timeout", 300)
    merged = settings.get_string_map("httpserver")
    assert list(merged) == ["default"]
    assert merged["default"] == {"address": ":0", "timeout": 300}


def test_reset_clears_everything(settings):
    settings.set("a.b", 1)
    settings.set_default("c", 2)
    settings.reset()
    assert not settings.is_set("a.b")
    assert not settings.is_set("c")
    assert settings.get("a") is None


def test_missing_keys_give_zero_values(settings):
    assert settings.get_string("nope") == ""
    assert settings.get_int("nope") == 0
    assert settings.get_bool("nope") is False
    assert settings.get_string_list("nope") == []
    assert settings.get_string_map("nope") == {}
    assert settings.get_string_map_string("nope") == {}


def test_get_returns_copy(settings):
    settings.set("consumer.c1.class-name", "kafka")
    copied = settings.get_string_map("consumer")
    copied["c2"] = {}
    copied["c1"]["class-name"] = "changed"
    assert list(settings.get_string_map("consumer")) == ["c1"]
    assert settings.get_string("consumer.c1.class-name") == "kafka"


def test_leaf_replaced_by_subtree(settings):
    settings.set("a", "leaf")
    settings.set("a.b", "inner")
    assert settings.get_string("a.b") == "inner"
    assert settings.get_string_map("a") == {"b": "inner"}


@pytest.mark.parametrize(
    "value, expected",
    [("42", 42), ("bad", 0), (True, 1), (7.9, 7), ("0x10", 16)],
)
def test_get_int_conversions(settings, value, expected):
    settings.set("k", value)
    assert settings.get_int("k") == expected


@pytest.mark.parametrize(
    "value, expected",
    [("true", True), ("T", True), ("1", True), ("0", False), ("nope", False), (2, True), (0, False)],
)
def test_get_bool_conversions(settings, value, expected):
    settings.set("k", value)
    assert settings.get_bool("k") is expected


def test_get_string_conversions(settings):
    settings.set("flag", True)
    settings.set("num", 8080)
    assert settings.get_string("flag") == "true"
    assert settings.get_string("num") == "8080"


def test_get_string_list(settings):
    settings.set("zookeeper.servers", ["zk1:2181", "zk2:2181"])
    settings.set("spaced", "a b  c")
    assert settings.get_string_list("zookeeper.servers") == ["zk1:2181", "zk2:2181"]
    assert settings.get_string_list("spaced") == ["a", "b", "c"]


def test_get_string_map_string_converts_values(settings):
    settings.set("extras", {"port": 25, "tls": False})
    assert settings.get_string_map_string("extras") == {"port": "25", "tls": "false"}


def test_empty_key_rejected(settings):
    with pytest.raises(KeyError):
        settings.set("", 1)