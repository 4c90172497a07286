"""
Input assembly and lag resolution.

Each period, a module's inputs are read from the output bags produced earlier
in the same period (lag 0), from the bags stored at the end of the previous
period (lag 1), or computed by a transform over several bags.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

from .diagnostics import UNDECLARED_READ, Diagnostic, emit
from .graph import ExecutionPlan
from .params import get_path
from .wiring import ResolvedWire

_EMPTY: Mapping[str, Any] = {}


class TrackedBag(Mapping):
    """
    Read-only view of an output bag that records every field requested.

    Misses are recorded too: a transform probing for a field that is not
    there still depends on it.
    """

    def __init__(self, module: str, bag: Mapping[str, Any], accessed: set[tuple[str, str]]):
        self._module = module
        self._bag = bag
        self._accessed = accessed

    def __getitem__(self, key: str) -> Any:
        self._accessed.add((self._module, key))
        return self._bag[key]

    def get(self, key: str, default: Any = None) -> Any:
        self._accessed.add((self._module, key))
        return self._bag.get(key, default)

    def __contains__(self, key: object) -> bool:
        if isinstance(key, str):
            self._accessed.add((self._module, key))
        return key in self._bag

    def __iter__(self) -> Iterator[str]:
        return iter(self._bag)

    def __len__(self) -> int:
        return len(self._bag)

    def __repr__(self) -> str:
        return f"TrackedBag({self._module!r}, {dict(self._bag)!r})"


def assemble_inputs(
    plan: ExecutionPlan,
    consumer: str,
    current: Mapping[str, Mapping[str, Any]],
    previous: Mapping[str, Mapping[str, Any]] | None,
    year: int,
    period_index: int,
    track_reads: bool = False,
    diagnostics: list[Diagnostic] | None = None,
) -> dict[str, Any]:
    """
    Resolve every declared input of ``consumer`` for one period.

    Args:
        plan: Execution plan holding the resolved wires
        consumer: Module whose inputs are assembled
        current: Bags produced so far this period, by module
        previous: Bags from the previous period, or None in the first period
        year: Simulated year
        period_index: Zero-based period index
        track_reads: Record transform bag reads and warn about undeclared ones
        diagnostics: Sink for undeclared-read diagnostics

    Returns:
        Input name -> value
    """
    inputs: dict[str, Any] = {}
    for input_name, wire in plan.wires.get(consumer, {}).items():
        if wire.transform is not None:
            inputs[input_name] = _evaluate_transform(
                plan, wire, current, previous, year, period_index,
                track_reads, diagnostics,
            )
        else:
            inputs[input_name] = _read_ref(wire, current, previous)
    return inputs


def _read_ref(
    wire: ResolvedWire,
    current: Mapping[str, Mapping[str, Any]],
    previous: Mapping[str, Mapping[str, Any]] | None,
) -> Any:
    ref = wire.ref
    if wire.lag:
        if previous is None:
            return wire.default
        bag = previous[ref.producer]
    else:
        bag = current[ref.producer]

    value = bag[ref.field]
    if ref.subpath:
        nested = get_path(value, list(ref.subpath))
        if nested is None:
            raise KeyError(
                f"'{ref.path}' not found in the output of module '{ref.producer}'"
            )
        return nested
    return value


def _evaluate_transform(
    plan: ExecutionPlan,
    wire: ResolvedWire,
    current: Mapping[str, Mapping[str, Any]],
    previous: Mapping[str, Mapping[str, Any]] | None,
    year: int,
    period_index: int,
    track_reads: bool,
    diagnostics: list[Diagnostic] | None,
) -> Any:
    if previous is None and wire.is_lagged:
        return wire.default

    declared = {read.producer for read in wire.reads}
    bags: dict[str, Mapping[str, Any]] = {}
    for name in plan.order:
        if name in wire.lagged_producers:
            bags[name] = previous[name]
        elif name in current:
            bags[name] = current[name]
        elif name not in declared and previous is not None:
            # not produced yet this period: an undeclared read sees a stale bag
            bags[name] = previous[name]
        else:
            bags[name] = _EMPTY

    if not track_reads:
        return wire.transform.fn(bags, year, period_index)

    accessed: set[tuple[str, str]] = set()
    tracked = {name: TrackedBag(name, bag, accessed) for name, bag in bags.items()}
    try:
        return wire.transform.fn(tracked, year, period_index)
    finally:
        _report_undeclared(wire, accessed, diagnostics)


def _report_undeclared(
    wire: ResolvedWire,
    accessed: set[tuple[str, str]],
    diagnostics: list[Diagnostic] | None,
) -> None:
    allowed = {(read.producer, read.field) for read in wire.reads}
    undeclared = sorted(accessed - allowed)
    if not undeclared:
        return
    fields = [field for _, field in undeclared]
    described = ", ".join(f"'{field}' (module '{module}')" for module, field in undeclared)
    emit(
        diagnostics if diagnostics is not None else [],
        UNDECLARED_READ,
        wire.target,
        f"Transform for input '{wire.input}' of module '{wire.consumer}' read "
        f"undeclared field(s) {described}; the execution order does not "
        "account for them",
        meta={
            "input": wire.input,
            "consumer": wire.consumer,
            "fields": fields,
            "reads": [f"{module}.{field}" for module, field in undeclared],
        },
    )
