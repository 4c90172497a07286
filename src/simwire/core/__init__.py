"""
Core module for SimWire.

This module contains the autowiring engine: the module contract, the output
registry, wiring resolution, the lag-aware execution plan and the runner.
"""

from .connectors import validate_connector_tags, validate_connectors
from .diagnostics import UNDECLARED_READ, VALIDATION_WARNING, Diagnostic
from .errors import (
    AutowireError,
    ConfigurationError,
    CycleError,
    RuntimeStepError,
    ValidationError,
)
from .graph import DependencyEdge, ExecutionPlan, build_execution_plan, topological_order
from .inputs import TrackedBag, assemble_inputs
from .interfaces import IModule
from .introspect import ParameterInfo, ParamMeta, Range, generate_parameter_schema
from .kinds import ConnectorType
from .module import FunctionModule, Module, StepResult, define_module
from .params import ComponentParams, deep_merge, freeze_params, get_path
from .problem import SimulationProblem, Stepper, define_simulation, init, solve
from .registry import OutputRegistry
from .results import AutowireResult
from .runner import AutowireConfig, AutowireEngine, AutowireState, run_autowired
from .validation import ValidationResult, WiringReport, validate_modules, validated_merge
from .wiring import MISSING, Ref, ResolvedWire, Transform, WireEntry, resolve_wiring

__all__ = [
    # Errors
    "AutowireError",
    "ConfigurationError",
    "CycleError",
    "ValidationError",
    "RuntimeStepError",
    # Module contract
    "IModule",
    "Module",
    "FunctionModule",
    "StepResult",
    "define_module",
    "ConnectorType",
    # Parameters
    "ComponentParams",
    "deep_merge",
    "freeze_params",
    "get_path",
    "ParamMeta",
    "Range",
    "ParameterInfo",
    "generate_parameter_schema",
    # Validation and diagnostics
    "ValidationResult",
    "WiringReport",
    "validated_merge",
    "validate_modules",
    "Diagnostic",
    "VALIDATION_WARNING",
    "UNDECLARED_READ",
    # Wiring and planning
    "OutputRegistry",
    "MISSING",
    "Ref",
    "Transform",
    "WireEntry",
    "ResolvedWire",
    "resolve_wiring",
    "validate_connector_tags",
    "validate_connectors",
    "DependencyEdge",
    "ExecutionPlan",
    "build_execution_plan",
    "topological_order",
    # Running
    "TrackedBag",
    "assemble_inputs",
    "AutowireConfig",
    "AutowireEngine",
    "AutowireState",
    "AutowireResult",
    "run_autowired",
    "SimulationProblem",
    "Stepper",
    "define_simulation",
    "init",
    "solve",
]
