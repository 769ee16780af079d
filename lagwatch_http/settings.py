"""A small hierarchical key/value store for dotted configuration keys."""

from __future__ import annotations

import copy
import json
import threading
from collections.abc import Mapping
from typing import Any

_MISSING = object()
_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})


def _normalise(value: Any) -> Any:
    """Deep-copy ``value`` with all mapping keys lower-cased."""
    if isinstance(value, Mapping):
        return {str(k).lower(): _normalise(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalise(item) for item in value]
    return value


def _path(key: str) -> list[str]:
    return key.lower().split(".") if key else []


def _store(tree: dict, key: str, value: Any) -> None:
    parts = _path(key)
    if not parts:
        raise KeyError("empty configuration key")
    node = tree
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = _normalise(value)


def _find(tree: dict, parts: list[str]) -> Any:
    if not parts:
        return _MISSING
    node: Any = tree
    for part in parts:
        if not isinstance(node, dict) or part not in node:
            return _MISSING
        node = node[part]
    return node


def _merge(base: dict, top: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in top.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _to_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return ""


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        if value != value.strip():
            return 0
        try:
            return int(value, 0)
        except ValueError:
            return 0
    return 0


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value in _TRUE_WORDS
    return False


def _to_mapping(value: Any) -> dict:
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return {}
    if isinstance(value, dict):
        return {str(k): v for k, v in value.items()}
    return {}


class Settings:
    """Dotted-key configuration with overrides layered over defaults.

    Keys are case-insensitive. Setting ``a.b.c`` creates the nested maps
    ``a`` and ``a.b``, so ``a`` and ``a.b`` then count as set too.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._overrides: dict = {}
        self._defaults: dict = {}

    def set(self, key: str, value: Any) -> None:
        """Set ``key`` to ``value``, taking precedence over any default."""
        with self._lock:
            _store(self._overrides, key, value)

    def set_default(self, key: str, value: Any) -> None:
        """Set the value ``key`` has when nothing overrides it."""
        with self._lock:
            _store(self._defaults, key, value)

    def reset(self) -> None:
        """Forget every value and default."""
        with self._lock:
            self._overrides = {}
            self._defaults = {}

    def is_set(self, key: str) -> bool:
        return self.get(key) is not None

    def get(self, key: str) -> Any:
        """Return a copy of the value at ``key``, or None when absent.

        Where both an override and a default hold maps, they are merged with
        the override winning on each key.
        """
        parts = _path(key)
        with self._lock:
            top = _find(self._overrides, parts)
            base = _find(self._defaults, parts)
            if top is _MISSING:
                return None if base is _MISSING else copy.deepcopy(base)
            if isinstance(top, dict) and isinstance(base, dict):
                return _merge(base, top)
            return copy.deepcopy(top)

    def get_string(self, key: str) -> str:
        return _to_string(self.get(key))

    def get_int(self, key: str) -> int:
        return _to_int(self.get(key))

    def get_bool(self, key: str) -> bool:
        return _to_bool(self.get(key))

    def get_string_list(self, key: str) -> list[str]:
        value = self.get(key)
        if isinstance(value, str):
            return value.split()
        if isinstance(value, list):
            return [_to_string(item) for item in value]
        return []

    def get_string_map(self, key: str) -> dict[str, Any]:
        return _to_mapping(self.get(key))

    def get_string_map_string(self, key: str) -> dict[str, str]:
        return {k: _to_string(v) for k, v in _to_mapping(self.get(key)).items()}