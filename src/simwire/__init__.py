"""
SimWire - Autowiring Engine for Coupled Simulation Modules

SimWire turns a set of independently written simulation modules into one
deterministic, period-by-period execution plan. Each module declares the
fields it reads and writes; the engine connects them, orders them and threads
their state through the run.

Key Features:
- **Declarative Wiring**: Inputs are matched to same-named outputs automatically;
  explicit wire entries, nested paths and transforms cover the rest
- **Lagged Feedback**: Cyclic feedback between modules is legal when closed by a
  one-period lag; same-period cycles are rejected before anything runs
- **Deterministic Order**: One fixed execution plan, tie-broken by declaration order
- **Fail Fast**: Wiring problems and parameter errors are reported all at once
- **Collectors**: Declarative rules turn the raw history into series and metrics

Architecture Overview:
- **Module / IModule**: The contract every simulation component satisfies
- **OutputRegistry**: Maps each output field to its single producer
- **ExecutionPlan**: Lag-aware topological order over same-period dependencies
- **AutowireEngine**: init / step / finalize over the configured year range
- **Collectors**: TimeseriesDef / MetricDef rules over the finished history

Quick Start:
    ```python
    from simwire import AutowireConfig, WireEntry, define_module, run_autowired

    def economy_step(state, inputs, params, year, i):
        gdp = state * (1 + params["growth"]) * (1 - inputs["damages"])
        return gdp, {"gdp": gdp, "emissions": gdp * params["intensity"]}

    def climate_step(state, inputs, params, year, i):
        temp = state + params["tcre"] * inputs["emissions"]
        return temp, {"temperature": temp, "damages": 0.01 * temp**2}

    economy = define_module(
        "economy", economy_step, inputs=["damages"], outputs=["gdp", "emissions"],
        init=lambda p: 100.0, defaults={"growth": 0.02, "intensity": 0.3},
    )
    climate = define_module(
        "climate", climate_step, inputs=["emissions"],
        outputs=["temperature", "damages"],
        init=lambda p: 1.2, defaults={"tcre": 0.0005},
    )

    result = run_autowired(AutowireConfig(
        modules=[economy, climate],
        wiring=[WireEntry("economy", "damages", "damages", lag=1, default=0.0)],
        start_year=2025, end_year=2030,
    ))
    result.time_series("climate", "temperature")
    ```
"""

# Version information
__version__ = "0.1.0"
__author__ = "SimWire Team"
__description__ = "Autowiring engine for coupled simulation modules"

from .collectors import (
    CollectedResults,
    CollectorConfig,
    Custom,
    First,
    MetricDef,
    TimeseriesDef,
    collect_results,
    describe_outputs,
)
from .core import (
    MISSING,
    AutowireConfig,
    AutowireEngine,
    AutowireError,
    AutowireResult,
    AutowireState,
    ComponentParams,
    ConfigurationError,
    ConnectorType,
    CycleError,
    Diagnostic,
    ExecutionPlan,
    FunctionModule,
    IModule,
    Module,
    OutputRegistry,
    ParamMeta,
    Range,
    Ref,
    RuntimeStepError,
    SimulationProblem,
    StepResult,
    Stepper,
    Transform,
    ValidationError,
    ValidationResult,
    WireEntry,
    WiringReport,
    build_execution_plan,
    define_module,
    define_simulation,
    generate_parameter_schema,
    init,
    run_autowired,
    solve,
    validated_merge,
)

# Define what gets imported with "from simwire import *"
__all__ = [
    # Module contract
    "IModule",
    "Module",
    "FunctionModule",
    "StepResult",
    "define_module",
    "ConnectorType",
    # Wiring
    "MISSING",
    "Ref",
    "Transform",
    "WireEntry",
    "OutputRegistry",
    "ExecutionPlan",
    "build_execution_plan",
    "WiringReport",
    # Running
    "AutowireConfig",
    "AutowireEngine",
    "AutowireState",
    "AutowireResult",
    "run_autowired",
    "SimulationProblem",
    "Stepper",
    "define_simulation",
    "solve",
    "init",
    # Parameters
    "ComponentParams",
    "ParamMeta",
    "Range",
    "generate_parameter_schema",
    "ValidationResult",
    "validated_merge",
    # Collectors
    "TimeseriesDef",
    "MetricDef",
    "First",
    "Custom",
    "CollectorConfig",
    "CollectedResults",
    "collect_results",
    "describe_outputs",
    # Errors and diagnostics
    "AutowireError",
    "ConfigurationError",
    "CycleError",
    "ValidationError",
    "RuntimeStepError",
    "Diagnostic",
]
