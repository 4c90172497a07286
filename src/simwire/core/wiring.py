"""
Wiring configuration: how module inputs are fed from other modules' outputs.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from copy import deepcopy
from dataclasses import dataclass, field, replace
from typing import Any

from .module import declared_connector_type
from .params import freeze_params
from .registry import OutputRegistry
from .validation import WiringReport

__all__ = [
    "MISSING",
    "Ref",
    "Transform",
    "WireEntry",
    "ResolvedRead",
    "ResolvedWire",
    "resolve_wiring",
]

SUPPORTED_LAGS = (0, 1)


class _Missing:
    """Sentinel for 'no default configured'."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()

TransformFn = Callable[[Mapping[str, Mapping[str, Any]], int, int], Any]


@dataclass(frozen=True)
class Ref:
    """
    Direct reference to a producer's output field.

    Attributes:
        path: Output field name, optionally followed by a dot-path into a
            nested value (e.g., ``'regionalDamages.oecd'``)
        producer: Producing module; None resolves it through the output registry
    """

    path: str
    producer: str | None = None

    @property
    def field(self) -> str:
        return self.path.split(".", 1)[0]

    @property
    def subpath(self) -> tuple[str, ...]:
        return tuple(self.path.split(".")[1:])


@dataclass(frozen=True)
class Transform:
    """
    Derived input computed from one or more modules' output bags.

    ``fn(bags, year, period_index)`` receives a mapping of module name to that
    module's output bag. Bags of modules named in ``reads`` are taken from the
    current period, or from the previous period for fields listed in
    ``lagged_reads`` (or for every field when the wire entry has ``lag=1``).

    Attributes:
        fn: Function computing the input value
        reads: Output field ids the function reads (``'field'`` or
            ``'module.field'``); each one is a dependency edge
        lagged_reads: Subset of ``reads`` taken from the previous period
    """

    fn: TransformFn
    reads: Sequence[str] = ()
    lagged_reads: Sequence[str] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "reads", tuple(self.reads))
        object.__setattr__(self, "lagged_reads", tuple(self.lagged_reads))


@dataclass(frozen=True)
class WireEntry:
    """
    One wiring rule: which value feeds ``consumer``'s ``input``.

    Attributes:
        consumer: Consuming module name
        input: Declared input field of the consumer
        source: ``Ref``, ``Transform``, or a field path string (shorthand for
            ``Ref(path)``)
        lag: 0 reads the current period, 1 reads the previous period
        default: Value used when a lagged read has no previous period (period 0).
            When omitted, the zero value of the consumer's declared connector
            type is used; untagged lagged inputs must set it explicitly.
    """

    consumer: str
    input: str
    source: Ref | Transform | str
    lag: int = 0
    default: Any = MISSING

    @property
    def target(self) -> str:
        return f"{self.consumer}.{self.input}"


@dataclass(frozen=True)
class ResolvedRead:
    """A single field read by a wire, after producer resolution."""

    producer: str
    field: str
    lag: int

    @property
    def field_id(self) -> str:
        return f"{self.producer}.{self.field}"


@dataclass(frozen=True)
class ResolvedWire:
    """
    Normalized wiring of one consumer input.

    Attributes:
        consumer: Consuming module
        input: Input field name
        reads: Every field the wire depends on (exactly one for direct refs)
        lag: 1 if the wire as a whole is deferred one period
        ref: The direct reference, for non-transform wires
        transform: The transform, for derived inputs
        default: First-period value for lagged wires (MISSING if not lagged)
        implicit: True if the wire was inferred from a same-named output
    """

    consumer: str
    input: str
    reads: tuple[ResolvedRead, ...]
    lag: int = 0
    ref: Ref | None = None
    transform: Transform | None = None
    default: Any = MISSING
    implicit: bool = False
    lagged_producers: frozenset[str] = field(default_factory=frozenset)

    @property
    def target(self) -> str:
        return f"{self.consumer}.{self.input}"

    @property
    def is_lagged(self) -> bool:
        """True if any value this wire reads comes from the previous period."""
        return self.lag > 0 or any(r.lag > 0 for r in self.reads)


def resolve_wiring(
    registry: OutputRegistry,
    wiring: Sequence[WireEntry],
    report: WiringReport,
) -> dict[str, dict[str, ResolvedWire]]:
    """
    Resolve every declared module input to a wire.

    Explicit entries are checked and normalized; inputs without an entry are
    auto-wired to the module producing an output of the same name at lag 0.
    Problems are appended to ``report`` instead of being raised, so the caller
    can report the whole configuration at once.

    Returns:
        Consumer name -> input name -> ResolvedWire, in declaration order
    """
    explicit: dict[tuple[str, str], WireEntry] = {}
    for entry in wiring:
        if not registry.is_module(entry.consumer):
            report.unknown_inputs.append(
                f"Wire '{entry.target}' targets unknown module '{entry.consumer}'"
            )
            report.add_problem(entry.consumer)
            continue
        consumer = registry.get_module(entry.consumer)
        if entry.input not in consumer.inputs:
            report.unknown_inputs.append(
                f"Wire '{entry.target}': module '{entry.consumer}' "
                f"declares no input '{entry.input}'"
            )
            report.add_problem(entry.consumer)
            continue
        key = (entry.consumer, entry.input)
        if key in explicit:
            report.duplicate_wires.append(
                f"Input '{entry.target}' is wired more than once"
            )
            report.add_problem(entry.consumer)
            continue
        explicit[key] = entry

    resolved: dict[str, dict[str, ResolvedWire]] = {}
    for name, module in registry.iter_modules():
        wires: dict[str, ResolvedWire] = {}
        for input_name in module.inputs:
            input_name = str(input_name)
            entry = explicit.get((name, input_name))
            if entry is None:
                wire = _auto_wire(registry, name, input_name, report)
            else:
                wire = _resolve_entry(registry, entry, report)
            if wire is not None:
                wires[input_name] = wire
        resolved[name] = wires
    return resolved


def _auto_wire(
    registry: OutputRegistry, consumer: str, input_name: str, report: WiringReport
) -> ResolvedWire | None:
    producer = registry.producer_of(input_name)
    if producer is None:
        report.unresolved_inputs.append(
            f"Input '{consumer}.{input_name}' has no wiring entry and no module "
            f"outputs '{input_name}'. Add a wire, a transform, or a producing module."
        )
        report.add_problem(consumer)
        return None
    return ResolvedWire(
        consumer=consumer,
        input=input_name,
        reads=(ResolvedRead(producer, input_name, 0),),
        ref=Ref(input_name, producer),
        implicit=True,
    )


def _resolve_entry(
    registry: OutputRegistry, entry: WireEntry, report: WiringReport
) -> ResolvedWire | None:
    ok = True
    if isinstance(entry.lag, bool) or entry.lag not in SUPPORTED_LAGS:
        report.unsupported_lags.append(
            f"Wire '{entry.target}' has lag {entry.lag!r}; only lags 0 and 1 are supported"
        )
        report.add_problem(entry.consumer)
        ok = False

    source = Ref(entry.source) if isinstance(entry.source, str) else entry.source
    reads: list[ResolvedRead] = []
    ref: Ref | None = None
    transform: Transform | None = None

    if isinstance(source, Ref):
        producer = source.producer or registry.producer_of(source.field)
        if producer is None:
            report.unknown_sources.append(
                f"Wire '{entry.target}': no module outputs '{source.field}'"
            )
            report.add_problem(entry.consumer)
            return None
        if not registry.is_module(producer):
            report.unknown_sources.append(
                f"Wire '{entry.target}': producer '{producer}' is not a module"
            )
            report.add_problem(entry.consumer)
            return None
        if not registry.produces(producer, source.field):
            report.unknown_sources.append(
                f"Wire '{entry.target}': module '{producer}' does not output "
                f"'{source.field}'"
            )
            report.add_problem(entry.consumer, producer)
            return None
        ref = Ref(source.path, producer)
        reads.append(ResolvedRead(producer, source.field, _lag_value(entry.lag)))
    elif isinstance(source, Transform):
        transform = source
        lagged_ids = set(source.lagged_reads)
        unknown_lagged = lagged_ids - set(source.reads)
        if unknown_lagged:
            report.unknown_sources.append(
                f"Wire '{entry.target}': lagged_reads {sorted(unknown_lagged)} "
                "are not listed in reads"
            )
            report.add_problem(entry.consumer)
            ok = False
        for field_id in source.reads:
            read = _resolve_field_id(registry, field_id)
            if read is None:
                report.unknown_sources.append(
                    f"Wire '{entry.target}': transform reads unknown field '{field_id}'"
                )
                report.add_problem(entry.consumer)
                ok = False
                continue
            producer, field_name = read
            lag = 1 if field_id in lagged_ids else _lag_value(entry.lag)
            reads.append(ResolvedRead(producer, field_name, lag))
    else:
        report.unknown_sources.append(
            f"Wire '{entry.target}': source must be a Ref, Transform or field path, "
            f"got {type(entry.source).__name__}"
        )
        report.add_problem(entry.consumer)
        return None

    lagged_by_producer: dict[str, set[int]] = {}
    for read in reads:
        lagged_by_producer.setdefault(read.producer, set()).add(read.lag)
    mixed = sorted(p for p, lags in lagged_by_producer.items() if len(lags) > 1)
    if mixed:
        report.unknown_sources.append(
            f"Wire '{entry.target}': transform reads module(s) {mixed} both "
            "lagged and unlagged; split it into separate inputs"
        )
        report.add_problem(entry.consumer, *mixed)
        ok = False

    wire = ResolvedWire(
        consumer=entry.consumer,
        input=entry.input,
        reads=tuple(reads),
        lag=_lag_value(entry.lag),
        ref=ref,
        transform=transform,
        lagged_producers=frozenset(
            p for p, lags in lagged_by_producer.items() if lags == {1}
        ),
    )
    if wire.is_lagged:
        default = _lag_default(registry, entry)
        if default is MISSING:
            report.missing_defaults.append(
                f"Lagged input '{entry.target}' needs a default for the first period: "
                "set WireEntry.default or declare a connector type for the input"
            )
            report.add_problem(entry.consumer)
            ok = False
        wire = _replace_default(wire, default)
    return wire if ok else None


def _lag_value(lag: Any) -> int:
    return 1 if lag == 1 and not isinstance(lag, bool) else 0


def _resolve_field_id(registry: OutputRegistry, field_id: str) -> tuple[str, str] | None:
    """Resolve ``'field'`` or ``'module.field'`` to ``(producer, field)``."""
    if field_id in registry:
        return registry.producer_of(field_id), field_id
    module, sep, field_name = field_id.partition(".")
    if sep and registry.is_module(module) and registry.produces(module, field_name):
        return module, field_name
    return None


def _lag_default(registry: OutputRegistry, entry: WireEntry) -> Any:
    if entry.default is not MISSING:
        return freeze_params(deepcopy(entry.default))
    try:
        tag = declared_connector_type(
            registry.get_module(entry.consumer), "inputs", entry.input
        )
    except ValueError:
        return MISSING
    if tag is None:
        return MISSING
    return freeze_params(tag.zero())


def _replace_default(wire: ResolvedWire, default: Any) -> ResolvedWire:
    return replace(wire, default=default)
