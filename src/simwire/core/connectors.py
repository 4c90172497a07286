"""
Connector type validation between wired producers and consumers.
"""

from __future__ import annotations

from collections.abc import Mapping

from .kinds import ConnectorType
from .module import declared_connector_type
from .registry import OutputRegistry
from .validation import WiringReport
from .wiring import ResolvedWire


def validate_connector_tags(registry: OutputRegistry, report: WiringReport) -> None:
    """
    Check that every declared connector tag is a known ConnectorType.

    Unknown tags are reported as type mismatches. Tags for fields a module does
    not declare as inputs or outputs are reported too, since they can never be
    checked.
    """
    for name, module in registry.iter_modules():
        declared = getattr(module, "connector_types", None) or {}
        for side, fields in (("inputs", module.inputs), ("outputs", module.outputs)):
            tags = declared.get(side) or {}
            if not isinstance(tags, Mapping):
                report.type_mismatches.append(
                    f"Module '{name}': connector_types['{side}'] must be a mapping"
                )
                report.add_problem(name)
                continue
            for field, tag in tags.items():
                if field not in fields:
                    report.type_mismatches.append(
                        f"Module '{name}' tags {side[:-1]} '{field}' "
                        f"which it does not declare"
                    )
                    report.add_problem(name)
                    continue
                try:
                    ConnectorType.parse(tag)
                except ValueError as exc:
                    report.type_mismatches.append(f"Module '{name}' {side}.{field}: {exc}")
                    report.add_problem(name)


def validate_connectors(
    registry: OutputRegistry,
    wires: Mapping[str, Mapping[str, ResolvedWire]],
    report: WiringReport,
) -> None:
    """
    Compare producer and consumer connector types for every direct wire.

    A pair is checked only when both sides declare a tag; untagged pairs are
    trusted. Refs into a nested path are skipped, because the producer's tag
    describes the whole field, not the extracted sub-value. Transforms are
    skipped, since their result type is whatever the function returns.
    """
    for consumer_name, by_input in wires.items():
        consumer = registry.get_module(consumer_name)
        for input_name, wire in by_input.items():
            if wire.ref is None or wire.ref.subpath:
                continue
            producer = registry.get_module(wire.ref.producer)
            try:
                out_tag = declared_connector_type(producer, "outputs", wire.ref.field)
                in_tag = declared_connector_type(consumer, "inputs", input_name)
            except ValueError:
                # reported by validate_connector_tags
                continue
            if out_tag is None or in_tag is None or out_tag is in_tag:
                continue
            report.type_mismatches.append(
                f"Connector type mismatch: '{producer.name}' outputs "
                f"'{wire.ref.field}' as {out_tag.value}, but '{consumer_name}' "
                f"expects input '{input_name}' as {in_tag.value}"
            )
            report.add_problem(producer.name, consumer_name)
