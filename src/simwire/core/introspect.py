"""
Parameter introspection generated from module ``param_meta`` trees.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass
from typing import Any

from .interfaces import IModule
from .params import get_path


@dataclass(frozen=True)
class Range:
    """Plausible bounds and nominal value of a numeric parameter."""

    min: float | None = None
    max: float | None = None
    default: float | None = None


@dataclass(frozen=True)
class ParamMeta:
    """
    Documentation attached to one leaf of a module's parameter tree.

    Attributes:
        description: What the parameter controls
        unit: Physical or monetary unit (e.g., 'K', 'USD/t')
        range: Plausible bounds
        tier: 1 = user-facing, 2 = scenario, 3 = calibration
        source: Literature source, if any
        param_name: Friendly schema key; defaults to the leaf key
    """

    description: str
    unit: str
    range: Range = Range()
    tier: int = 1
    source: str | None = None
    param_name: str | None = None


@dataclass(frozen=True)
class ParameterInfo:
    """Schema entry for one documented parameter."""

    type: str
    default: Any
    min: float | None
    max: float | None
    unit: str
    description: str
    path: str
    tier: int = 1

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def generate_parameter_schema(
    modules: Iterable[IModule], tiers: Iterable[int] | None = None
) -> dict[str, ParameterInfo]:
    """
    Walk every module's ``param_meta`` tree into a flat parameter schema.

    The default of each entry is read from the module's ``defaults`` at the
    same path, falling back to ``range.default``. Entries are keyed by
    ``param_name`` (or the leaf key); a later module overwrites an earlier one
    using the same key.

    Args:
        modules: Modules to introspect; modules without ``param_meta`` are skipped
        tiers: Only include these tiers (all tiers when None)

    Returns:
        Friendly parameter name -> ParameterInfo
    """
    allowed = set(tiers) if tiers is not None else None
    schema: dict[str, ParameterInfo] = {}
    for module in modules:
        meta = getattr(module, "param_meta", None)
        if not meta:
            continue
        _walk(meta, module.defaults, module.name, [], allowed, schema)
    return schema


def _walk(
    meta: Mapping[str, Any],
    defaults: Mapping[str, Any],
    module_name: str,
    parts: list[str],
    allowed: set[int] | None,
    schema: dict[str, ParameterInfo],
) -> None:
    for key, value in meta.items():
        path = parts + [key]
        if isinstance(value, ParamMeta):
            if allowed is not None and value.tier not in allowed:
                continue
            default = get_path(defaults, path)
            if default is None:
                default = value.range.default
            schema[value.param_name or key] = ParameterInfo(
                type="boolean" if isinstance(default, bool) else "number",
                default=default,
                min=value.range.min,
                max=value.range.max,
                unit=value.unit,
                description=value.description,
                path=".".join([module_name] + path),
                tier=value.tier,
            )
        elif isinstance(value, Mapping):
            _walk(value, defaults, module_name, path, allowed, schema)
