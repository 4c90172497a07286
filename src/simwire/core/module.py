"""
Base classes for simulation modules.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from typing import Any, NamedTuple

from .kinds import ConnectorType
from .params import deep_merge
from .validation import ValidationResult


class StepResult(NamedTuple):
    """
    Result of one module step.

    Attributes:
        state: New state, handed back to the module on the next period
        outputs: Output bag for this period (field name -> value)
    """

    state: Any
    outputs: Mapping[str, Any]

    @classmethod
    def coerce(cls, value: Any) -> StepResult:
        """
        Accept a StepResult, a ``(state, outputs)`` pair or a ``{state, outputs}`` mapping.

        Raises:
            TypeError: If ``value`` has none of these shapes, or its outputs
                are not a mapping
        """
        if isinstance(value, StepResult):
            result = value
        elif isinstance(value, Mapping) and "state" in value and "outputs" in value:
            result = cls(value["state"], value["outputs"])
        elif isinstance(value, tuple) and len(value) == 2:
            result = cls(*value)
        else:
            raise TypeError(
                "step() must return StepResult(state, outputs), "
                f"got {type(value).__name__}"
            )
        if not isinstance(result.outputs, Mapping):
            raise TypeError(
                f"step() outputs must be a mapping, got {type(result.outputs).__name__}"
            )
        return result


class Module(ABC):
    """
    Abstract base class for pluggable simulation modules.

    Subclasses declare their contract as class attributes and implement
    ``init`` and ``step``. Declared inputs and outputs are plain string lists
    checked at startup by the output registry.

    Attributes:
        name: Unique module identifier
        description: Human-readable description
        defaults: Default parameter tree
        inputs: Input field names this module consumes
        outputs: Output field names this module produces
        connector_types: Optional ``{"inputs": {field: tag}, "outputs": {field: tag}}``
        param_meta: Optional metadata tree mirroring ``defaults`` (see introspect)

    **Example Usage:**
        ```python
        class Climate(Module):
            name = "climate"
            defaults = {"sensitivity": 3.0}
            inputs = ["emissions"]
            outputs = ["temperature"]
            connector_types = {
                "inputs": {"emissions": "scalar"},
                "outputs": {"temperature": "scalar"},
            }

            def init(self, params):
                return {"temperature": 1.2}

            def step(self, state, inputs, params, year, period_index):
                t = state["temperature"] + 0.001 * inputs["emissions"]
                return StepResult({"temperature": t}, {"temperature": t})
        ```
    """

    name: str = ""
    description: str = ""
    defaults: Mapping[str, Any] = {}
    inputs: Sequence[str] = ()
    outputs: Sequence[str] = ()
    connector_types: Mapping[str, Mapping[str, Any]] = {}
    param_meta: Mapping[str, Any] | None = None

    def validate(self, params: Mapping[str, Any]) -> ValidationResult:
        """Accept any parameters unless overridden."""
        return ValidationResult.ok()

    def merge_params(self, partial: Mapping[str, Any]) -> dict[str, Any]:
        """Deep-merge ``partial`` over ``defaults``."""
        return deep_merge(self.defaults, partial)

    @abstractmethod
    def init(self, params: Mapping[str, Any]) -> Any:
        """Build the initial state."""

    @abstractmethod
    def step(
        self,
        state: Any,
        inputs: Mapping[str, Any],
        params: Mapping[str, Any],
        year: int,
        period_index: int,
    ) -> StepResult:
        """Compute one period."""

    def input_type(self, field: str) -> ConnectorType | None:
        """Declared connector type of an input, or None if untagged."""
        return declared_connector_type(self, "inputs", field)

    def output_type(self, field: str) -> ConnectorType | None:
        """Declared connector type of an output, or None if untagged."""
        return declared_connector_type(self, "outputs", field)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class FunctionModule(Module):
    """
    Module assembled from plain functions.

    Useful for small glue modules and tests; see :func:`define_module`.
    """

    def __init__(
        self,
        name: str,
        step: Callable[..., Any],
        inputs: Sequence[str] = (),
        outputs: Sequence[str] = (),
        init: Callable[[Mapping[str, Any]], Any] | None = None,
        defaults: Mapping[str, Any] | None = None,
        validate: Callable[[Mapping[str, Any]], Any] | None = None,
        connector_types: Mapping[str, Mapping[str, Any]] | None = None,
        param_meta: Mapping[str, Any] | None = None,
        description: str = "",
    ):
        if not name:
            raise ValueError("Module must define a name")
        self.name = name
        self.description = description
        self.defaults = dict(defaults or {})
        self.inputs = list(inputs)
        self.outputs = list(outputs)
        self.connector_types = dict(connector_types or {})
        self.param_meta = param_meta
        self._step = step
        self._init = init
        self._validate = validate

    def validate(self, params: Mapping[str, Any]) -> ValidationResult:
        if self._validate is None:
            return ValidationResult.ok()
        return ValidationResult.coerce(self._validate(params))

    def init(self, params: Mapping[str, Any]) -> Any:
        if self._init is None:
            return None
        return self._init(params)

    def step(self, state, inputs, params, year, period_index) -> StepResult:
        return StepResult.coerce(self._step(state, inputs, params, year, period_index))


def define_module(name: str, step: Callable[..., Any], **kwargs: Any) -> FunctionModule:
    """
    Create a module from a step function and keyword contract fields.

    ``step(state, inputs, params, year, period_index)`` may return a StepResult,
    a ``(state, outputs)`` tuple or a ``{"state": ..., "outputs": ...}`` mapping.
    """
    return FunctionModule(name, step, **kwargs)


def declared_connector_type(module: Any, side: str, field: str) -> ConnectorType | None:
    """Connector type declared by ``module`` for an input or output field, if any."""
    declared = (getattr(module, "connector_types", None) or {}).get(side) or {}
    tag = declared.get(field)
    return ConnectorType.parse(tag) if tag is not None else None
