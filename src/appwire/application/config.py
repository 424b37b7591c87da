"""Application layer - Dotted-key configuration repository."""

import copy
from typing import Any, Dict, Iterator, Mapping, MutableMapping, Optional

_MISSING = object()


def merge_config(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a deep copy of ``base``.

    Nested mappings are merged key by key; any other value in ``override``
    replaces the one in ``base``.
    """
    merged = copy.deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class ConfigRepository(MutableMapping):
    """Configuration values addressed by dotted keys.

    ``config["cache.driver"]`` reads ``{"cache": {"driver": ...}}``. Setting a
    dotted key creates the intermediate mappings.

    Example:
        >>> config = ConfigRepository({"session": {"handler": "file", "minutes": 120}})
        >>> config["session.handler"]
        'file'
        >>> config.get("session.name", "appwire")
        'appwire'
    """

    def __init__(self, items: Optional[Mapping[str, Any]] = None) -> None:
        self._items: Dict[str, Any] = copy.deepcopy(dict(items or {}))

    def get(self, key: str, default: Any = None) -> Any:
        value = self._lookup(key)
        return default if value is _MISSING else value

    def has(self, key: str) -> bool:
        return self._lookup(key) is not _MISSING

    def set(self, key: str, value: Any) -> None:
        parts = key.split(".")
        node = self._items
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = value

    def merge(self, items: Mapping[str, Any]) -> None:
        """Merge nested configuration on top of the current values."""
        self._items = merge_config(self._items, items)

    def all(self) -> Dict[str, Any]:
        return copy.deepcopy(self._items)

    def _lookup(self, key: str) -> Any:
        node: Any = self._items
        for part in key.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return _MISSING
            node = node[part]
        return node

    def __getitem__(self, key: str) -> Any:
        value = self._lookup(key)
        if value is _MISSING:
            raise KeyError(key)
        return value

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __delitem__(self, key: str) -> None:
        parent_key, _, last = key.rpartition(".")
        parent = self._lookup(parent_key) if parent_key else self._items
        if not isinstance(parent, dict) or last not in parent:
            raise KeyError(key)
        del parent[last]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"ConfigRepository({self._items!r})"
