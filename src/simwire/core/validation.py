"""
Validation and reporting utilities for SimWire.

Provides the result type returned by module ``validate()`` calls, the structured
wiring report built during plan construction, and the merge-then-validate step
applied to every module's parameters before a run.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .diagnostics import VALIDATION_WARNING, Diagnostic, emit
from .errors import ValidationError

if TYPE_CHECKING:
    from .interfaces import IModule


@dataclass
class ValidationResult:
    """
    Outcome of a module's parameter validation.

    Attributes:
        valid: False if any error was found
        errors: Fatal problems with the parameters
        warnings: Suspicious but acceptable values
    """

    valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def ok(cls, warnings: list[str] | None = None) -> ValidationResult:
        """A passing result, optionally carrying warnings."""
        return cls(True, [], list(warnings or []))

    @classmethod
    def from_messages(
        cls, errors: list[str], warnings: list[str] | None = None
    ) -> ValidationResult:
        """Build a result whose validity is derived from ``errors``."""
        return cls(not errors, list(errors), list(warnings or []))

    @classmethod
    def coerce(cls, value: ValidationResult | Mapping[str, Any]) -> ValidationResult:
        """Accept a ValidationResult or a ``{valid, errors, warnings}`` mapping."""
        if isinstance(value, ValidationResult):
            return value
        if isinstance(value, Mapping):
            errors = list(value.get("errors") or [])
            return cls(
                bool(value.get("valid", not errors)),
                errors,
                list(value.get("warnings") or []),
            )
        raise TypeError(
            f"validate() must return a ValidationResult, got {type(value).__name__}"
        )


@dataclass
class WiringReport:
    """
    Structured report of every wiring problem found while building a plan.

    All categories are filled exhaustively before any error is raised, so one
    failed plan construction lists every problem in the configuration.
    """

    duplicate_outputs: dict[str, list[str]] = field(default_factory=dict)
    unknown_sources: list[str] = field(default_factory=list)
    unresolved_inputs: list[str] = field(default_factory=list)
    unknown_inputs: list[str] = field(default_factory=list)
    duplicate_wires: list[str] = field(default_factory=list)
    unsupported_lags: list[str] = field(default_factory=list)
    missing_defaults: list[str] = field(default_factory=list)
    type_mismatches: list[str] = field(default_factory=list)
    cycles: list[list[str]] = field(default_factory=list)
    problem_ids: list[str] = field(default_factory=list)

    def add_problem(self, *module_ids: str) -> None:
        """Record module ids involved in a problem (deduplicated, ordered)."""
        for module_id in module_ids:
            if module_id and module_id not in self.problem_ids:
                self.problem_ids.append(module_id)

    def has_errors(self) -> bool:
        """Check if there are any hard errors."""
        return bool(
            self.duplicate_outputs
            or self.unknown_sources
            or self.unresolved_inputs
            or self.unknown_inputs
            or self.duplicate_wires
            or self.unsupported_lags
            or self.missing_defaults
            or self.type_mismatches
            or self.cycles
        )

    def is_valid(self) -> bool:
        """Check if the wiring can be turned into an execution plan."""
        return not self.has_errors()

    def errors(self) -> list[str]:
        """Flatten every category into one list of messages."""
        messages = [
            f"Output '{name}' is declared by more than one module: {', '.join(owners)}"
            for name, owners in self.duplicate_outputs.items()
        ]
        messages.extend(self.unknown_sources)
        messages.extend(self.unresolved_inputs)
        messages.extend(self.unknown_inputs)
        messages.extend(self.duplicate_wires)
        messages.extend(self.unsupported_lags)
        messages.extend(self.missing_defaults)
        messages.extend(self.type_mismatches)
        messages.extend(
            f"Same-period cycle: {' -> '.join(cycle + cycle[:1])}"
            for cycle in self.cycles
        )
        return messages

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "duplicate_outputs": self.duplicate_outputs,
            "unknown_sources": self.unknown_sources,
            "unresolved_inputs": self.unresolved_inputs,
            "unknown_inputs": self.unknown_inputs,
            "duplicate_wires": self.duplicate_wires,
            "unsupported_lags": self.unsupported_lags,
            "missing_defaults": self.missing_defaults,
            "type_mismatches": self.type_mismatches,
            "cycles": self.cycles,
            "problem_ids": self.problem_ids,
            "has_errors": self.has_errors(),
            "is_valid": self.is_valid(),
        }

    def __str__(self) -> str:
        """Human-readable string representation."""
        if self.is_valid():
            return "Wiring valid"
        return "\n".join(["Wiring invalid:"] + [f"  {e}" for e in self.errors()])


def validated_merge(
    module: IModule,
    partial: Mapping[str, Any] | None,
    diagnostics: list[Diagnostic] | None = None,
) -> dict[str, Any]:
    """
    Merge a module's partial parameters with its defaults, then validate them.

    Warnings are emitted as diagnostics; errors raise immediately.

    Args:
        module: Module whose parameters are merged
        partial: Parameter overrides (may be None)
        diagnostics: Optional sink receiving validation warnings

    Returns:
        The fully merged parameter tree

    Raises:
        ValidationError: If the module reports invalid parameters
    """
    merged, result = _merge_and_validate(module, partial)
    sink = diagnostics if diagnostics is not None else []
    for warning in result.warnings:
        emit(sink, VALIDATION_WARNING, module.name, warning)
    if not result.valid:
        raise ValidationError({module.name: result.errors or ["invalid parameters"]})
    return merged


def validate_modules(
    modules: list[IModule],
    params: Mapping[str, Mapping[str, Any]] | None,
    diagnostics: list[Diagnostic],
) -> dict[str, dict[str, Any]]:
    """
    Merge and validate parameters for every module.

    Every module is validated before anything is raised, so the resulting
    ValidationError lists the problems of all modules together.

    Returns:
        Module name -> merged parameter tree

    Raises:
        ValidationError: If any module reports invalid parameters
    """
    params = params or {}
    merged_by_module: dict[str, dict[str, Any]] = {}
    failures: dict[str, list[str]] = {}

    for module in modules:
        try:
            merged, result = _merge_and_validate(module, params.get(module.name))
        except (TypeError, ValueError, KeyError) as exc:
            failures[module.name] = [f"parameters could not be merged: {exc}"]
            continue
        for warning in result.warnings:
            emit(diagnostics, VALIDATION_WARNING, module.name, warning)
        if not result.valid:
            failures[module.name] = result.errors or ["invalid parameters"]
            continue
        merged_by_module[module.name] = merged

    if failures:
        raise ValidationError(failures)
    return merged_by_module


def _merge_and_validate(
    module: IModule, partial: Mapping[str, Any] | None
) -> tuple[dict[str, Any], ValidationResult]:
    merged = module.merge_params(partial or {})
    result = ValidationResult.coerce(module.validate(merged))
    return merged, result
