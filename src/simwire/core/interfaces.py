"""
Module interface protocol for SimWire.
Defines the contract that every pluggable simulation component must satisfy.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .module import StepResult
    from .validation import ValidationResult


@runtime_checkable
class IModule(Protocol):
    """
    Contract for simulation modules.

    Responsibilities: declare inputs and outputs by field name, own a default
    parameter tree, and advance its own state one period at a time through a
    pure ``step`` function.

    Optional attributes, read with ``getattr`` when present and not part of
    the runtime check:

    - ``description``: human-readable description
    - ``connector_types``: ``{"inputs": {field: tag}, "outputs": {field: tag}}``
    - ``param_meta``: metadata tree mirroring ``defaults``
    """

    name: str
    defaults: Mapping[str, Any]
    inputs: Sequence[str]
    outputs: Sequence[str]

    def validate(self, params: Mapping[str, Any]) -> ValidationResult:
        """Check a (partial or merged) parameter tree. Called once before the run."""
        ...

    def merge_params(self, partial: Mapping[str, Any]) -> dict[str, Any]:
        """Merge partial parameters over the module defaults."""
        ...

    def init(self, params: Mapping[str, Any]) -> Any:
        """Build the initial state. Called exactly once before the first period."""
        ...

    def step(
        self,
        state: Any,
        inputs: Mapping[str, Any],
        params: Mapping[str, Any],
        year: int,
        period_index: int,
    ) -> StepResult:
        """
        Compute one period.

        MUST be referentially transparent: identical arguments yield identical
        results, arguments are never mutated, and no I/O happens.

        Returns:
            StepResult with the new state and this period's output bag
        """
        ...


__all__ = ["IModule"]
