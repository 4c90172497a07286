"""
Dependency graph and lag-aware execution plan.

Only same-period (lag 0) edges constrain the execution order. Lagged edges
carry feedback across periods and are allowed to form cycles.
"""

from __future__ import annotations

import heapq
import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import NamedTuple

from .connectors import validate_connector_tags, validate_connectors
from .errors import ConfigurationError, CycleError
from .interfaces import IModule
from .registry import OutputRegistry
from .validation import WiringReport
from .wiring import ResolvedWire, WireEntry, resolve_wiring

logger = logging.getLogger(__name__)


class DependencyEdge(NamedTuple):
    """
    One field-level dependency between two modules.

    Attributes:
        producer: Module producing the field
        consumer: Module reading it
        lag: 0 for a same-period read, 1 for a previous-period read
        field: Output field read from the producer
        input: Consumer input the read feeds
    """

    producer: str
    consumer: str
    lag: int
    field: str
    input: str


@dataclass(frozen=True)
class ExecutionPlan:
    """
    Fixed module order for one simulated period, reused for every period.

    Attributes:
        order: Module names; every lag-0 producer precedes its consumers
        edges: All dependency edges, one per wired field
        wires: Consumer name -> input name -> resolved wire
        registry: Output registry the plan was built from
    """

    order: tuple[str, ...]
    edges: tuple[DependencyEdge, ...]
    wires: Mapping[str, Mapping[str, ResolvedWire]]
    registry: OutputRegistry

    @property
    def same_period_edges(self) -> tuple[DependencyEdge, ...]:
        return tuple(e for e in self.edges if e.lag == 0)

    @property
    def lagged_edges(self) -> tuple[DependencyEdge, ...]:
        return tuple(e for e in self.edges if e.lag > 0)

    def index(self, name: str) -> int:
        """Position of a module in the execution order."""
        return self.order.index(name)

    def modules(self) -> list[IModule]:
        """Modules in execution order."""
        return [self.registry.get_module(name) for name in self.order]

    def __str__(self) -> str:
        return " -> ".join(self.order)


def build_edges(
    wires: Mapping[str, Mapping[str, ResolvedWire]],
) -> list[DependencyEdge]:
    """Flatten resolved wires into one edge per field read."""
    edges: list[DependencyEdge] = []
    for consumer, by_input in wires.items():
        for input_name, wire in by_input.items():
            for read in wire.reads:
                edges.append(
                    DependencyEdge(read.producer, consumer, read.lag, read.field, input_name)
                )
    return edges


def topological_order(names: Sequence[str], edges: Iterable[DependencyEdge]) -> list[str]:
    """
    Order modules so that every same-period producer precedes its consumers.

    Kahn's algorithm over lag-0 edges. Among modules with no remaining
    predecessor, the one declared first runs first, so identical
    configurations always produce identical plans.

    Args:
        names: Module names in declaration order
        edges: Dependency edges; lagged edges are ignored

    Returns:
        Module names in execution order

    Raises:
        CycleError: If the same-period edges contain a cycle
    """
    edges = list(edges)
    order, remaining = _kahn(names, edges)
    if remaining:
        raise CycleError(_find_cycle(names, edges, remaining))
    return order


def build_execution_plan(
    modules: Sequence[IModule], wiring: Sequence[WireEntry] = ()
) -> ExecutionPlan:
    """
    Build the execution plan for a module set and its wiring.

    Every static check runs before anything is raised: the registry, the
    wiring resolution, connector types and the same-period sort. A failure
    raises one ConfigurationError carrying the complete WiringReport.

    Raises:
        ConfigurationError: On duplicate producers, unresolved or invalid
            wiring, or connector type mismatches
        CycleError: If the only problem is a same-period cycle
    """
    registry = OutputRegistry(modules)
    report = WiringReport()

    wires = resolve_wiring(registry, wiring, report)
    validate_connector_tags(registry, report)
    validate_connectors(registry, wires, report)

    names = registry.module_names()
    edges = build_edges(wires)
    order, remaining = _kahn(names, edges)
    cycle: list[str] = []
    if remaining:
        cycle = _find_cycle(names, edges, remaining)
        report.cycles.append(cycle)
        report.add_problem(*cycle)

    if report.has_errors():
        if cycle and len(report.errors()) == 1:
            raise CycleError(cycle, report=report)
        raise ConfigurationError(
            "Wiring configuration is invalid",
            errors=report.errors(),
            problem_ids=report.problem_ids,
            report=report,
        )

    logger.debug("Execution order: %s", " -> ".join(order))
    return ExecutionPlan(
        order=tuple(order),
        edges=tuple(edges),
        wires=wires,
        registry=registry,
    )


def _kahn(
    names: Sequence[str], edges: Iterable[DependencyEdge]
) -> tuple[list[str], set[str]]:
    position = {name: i for i, name in enumerate(names)}
    indeg: dict[str, int] = defaultdict(int)
    adj: dict[str, set[str]] = defaultdict(set)

    # parallel edges between the same pair count once
    for edge in edges:
        if edge.lag != 0 or edge.consumer in adj[edge.producer]:
            continue
        adj[edge.producer].add(edge.consumer)
        indeg[edge.consumer] += 1

    ready = [(position[n], n) for n in names if indeg[n] == 0]
    heapq.heapify(ready)
    order: list[str] = []

    while ready:
        _, name = heapq.heappop(ready)
        order.append(name)
        for consumer in adj[name]:
            indeg[consumer] -= 1
            if indeg[consumer] == 0:
                heapq.heappush(ready, (position[consumer], consumer))

    return order, set(names) - set(order)


def _find_cycle(
    names: Sequence[str], edges: Iterable[DependencyEdge], remaining: set[str]
) -> list[str]:
    """
    Extract one same-period cycle from the modules Kahn could not order.

    Every leftover module has a leftover predecessor, so walking predecessors
    from any of them must revisit a module.
    """
    preds: dict[str, list[str]] = defaultdict(list)
    position = {name: i for i, name in enumerate(names)}
    for edge in edges:
        if edge.lag == 0 and edge.producer in remaining and edge.consumer in remaining:
            preds[edge.consumer].append(edge.producer)

    start = min(remaining, key=position.__getitem__)
    walk = [start]
    seen = {start: 0}
    while True:
        node = min(preds[walk[-1]], key=position.__getitem__)
        if node in seen:
            cycle = walk[seen[node]:]
            break
        seen[node] = len(walk)
        walk.append(node)

    # walk follows consumer -> producer; report producer -> consumer
    cycle.reverse()
    first = min(range(len(cycle)), key=lambda i: position[cycle[i]])
    return cycle[first:] + cycle[:first]
