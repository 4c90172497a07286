"""
Parameter tree helpers: merging, freezing and dot-path access.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from copy import deepcopy
from types import MappingProxyType
from typing import Any


def deep_merge(defaults: Mapping[str, Any], partial: Mapping[str, Any] | None) -> dict:
    """
    Merge a partial parameter tree over defaults.

    Nested mappings are merged key by key; any other value in ``partial``
    replaces the default outright. Neither input is mutated.

    Args:
        defaults: Full default parameter tree
        partial: Overrides (may be None or empty)

    Returns:
        A new, fully merged parameter tree
    """
    merged = thaw_params(defaults)
    for key, value in (partial or {}).items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = thaw_params(value)
    return merged


def freeze_params(value: Any) -> Any:
    """
    Return a read-only view of a parameter tree.

    Mappings become ``MappingProxyType`` and lists become tuples, recursively.
    Merged parameters are frozen once at startup and stay immutable for the run.
    """
    if isinstance(value, MappingProxyType):
        return value
    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze_params(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze_params(v) for v in value)
    return value


def thaw_params(value: Any) -> Any:
    """Inverse of :func:`freeze_params`: plain dicts and lists, deep-copied."""
    if isinstance(value, Mapping):
        return {k: thaw_params(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw_params(v) for v in value]
    return deepcopy(value)


def get_path(tree: Any, path: str | list[str]) -> Any:
    """
    Read a value at a dot-path (e.g., ``'climate.sensitivity'``).

    Returns None when any segment is missing or not a mapping.
    """
    parts = path.split(".") if isinstance(path, str) else path
    current = tree
    for part in parts:
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
        if current is None:
            return None
    return current


class ComponentParams:
    """
    Immutable parameter container with dot-path access.

    Wraps any nested parameter tree and is meant for parameter sweeps: every
    ``set`` returns a new instance, and ``entries`` walks numeric leaves.

    **Example Usage:**
        ```python
        params = ComponentParams.from_tree({"climate": {"sensitivity": 3.0}})
        params.get("climate.sensitivity")          # 3.0
        hotter = params.set("climate.sensitivity", 4.5)
        list(hotter.entries())                    # [("climate.sensitivity", 4.5)]
        ```
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any]):
        self._data = thaw_params(data)

    @classmethod
    def from_tree(cls, tree: Mapping[str, Any]) -> ComponentParams:
        """Construct from any nested parameter tree (deep-copied)."""
        return cls(tree)

    def get(self, path: str) -> Any:
        """Value at a dot-path, or None if the path does not exist."""
        return deepcopy(get_path(self._data, path))

    def set(self, path: str, value: Any) -> ComponentParams:
        """Return a new container with the value at ``path`` replaced."""
        parts = path.split(".")
        clone = deepcopy(self._data)
        current = clone
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]
        current[parts[-1]] = deepcopy(value)
        return ComponentParams(clone)

    def entries(self) -> Iterator[tuple[str, float]]:
        """Yield ``(path, value)`` for every numeric leaf (bools excluded)."""
        yield from _walk_numeric(self._data, "")

    def paths(self) -> list[str]:
        """All dot-paths to numeric leaves."""
        return [path for path, _ in self.entries()]

    def to_params(self) -> dict[str, Any]:
        """Plain nested dict (deep copy)."""
        return deepcopy(self._data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ComponentParams):
            return NotImplemented
        return self._data == other._data

    def __repr__(self) -> str:
        return f"ComponentParams({self._data!r})"


def _walk_numeric(node: Mapping[str, Any], prefix: str) -> Iterator[tuple[str, float]]:
    for key, value in node.items():
        path = f"{prefix}.{key}" if prefix else key
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            yield path, value
        elif isinstance(value, Mapping):
            yield from _walk_numeric(value, path)
