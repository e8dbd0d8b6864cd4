"""Hierarchical settings store.

ConfigStore holds one configuration tree built from DEFAULT_CONFIG and a set
of overrides. Values are addressed with dot-delimited paths such as
"cache.ttl" or "features.network".
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from envprint.config.defaults import DEFAULT_CONFIG


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Deep merge two mappings, with override taking precedence.

    Nested mappings are merged key-by-key. Any other value (scalars, lists,
    tuples) in ``override`` replaces the value in ``base`` wholesale.

    Args:
        base: Base mapping with defaults
        override: Mapping with overriding values

    Returns:
        A new merged dictionary; neither input is modified
    """
    result = copy.deepcopy(dict(base))
    for key, value in override.items():
        if key in result and isinstance(result[key], Mapping) and isinstance(value, Mapping):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


class ConfigStore:
    """Dot-addressable configuration tree.

    The tree is rebuilt from the defaults on every ``init()`` call, so
    overrides never accumulate across calls. No schema validation is
    performed: unknown keys are kept and can be read back.

    Example:
        config = ConfigStore({"cache": {"ttl": 1000}})
        config.get("cache.ttl")             # 1000
        config.get("cache.maxSize")         # 100 (default)
        config.get("missing.path", "x")     # "x"
        config.update("features.audio", False)
    """

    def __init__(
        self,
        overrides: Mapping[str, Any] | None = None,
        defaults: Mapping[str, Any] | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            overrides: Values merged on top of the defaults
            defaults: Replacement default tree (DEFAULT_CONFIG if omitted)
        """
        self._defaults: Mapping[str, Any] = defaults if defaults is not None else DEFAULT_CONFIG
        self._tree: dict[str, Any] = {}
        self.init(overrides)

    def init(self, overrides: Mapping[str, Any] | None = None) -> None:
        """Re-initialize the tree from the defaults plus ``overrides``.

        Args:
            overrides: Values merged on top of the defaults
        """
        self._tree = deep_merge(self._defaults, overrides or {})

    def get(self, path: str, default: Any = None) -> Any:
        """Resolve a dot-delimited path.

        Args:
            path: Path such as "cache.ttl"
            default: Returned when any segment is missing, or when a
                non-mapping value is reached before the path is exhausted

        Returns:
            The stored value or ``default``
        """
        node: Any = self._tree
        for segment in path.split("."):
            if not isinstance(node, Mapping) or segment not in node:
                return default
            node = node[segment]
        return node

    def update(self, path: str, value: Any) -> None:
        """Write a leaf value, creating intermediate mappings as needed.

        A non-mapping value found on the way is replaced by a new mapping.

        Args:
            path: Path such as "features.audio"
            value: Value to store at the leaf
        """
        segments = path.split(".")
        node = self._tree
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = {}
                node[segment] = child
            node = child
        node[segments[-1]] = value

    def as_dict(self) -> dict[str, Any]:
        """Return a deep copy of the whole tree."""
        return copy.deepcopy(self._tree)

    def __contains__(self, path: str) -> bool:
        sentinel = object()
        return self.get(path, sentinel) is not sentinel

    def __repr__(self) -> str:
        return f"ConfigStore(sections={sorted(self._tree)})"
