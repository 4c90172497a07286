"""
Runner for autowired simulations: init, step, finalize and run.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from .diagnostics import Diagnostic
from .errors import ConfigurationError, RuntimeStepError
from .graph import ExecutionPlan, build_execution_plan
from .inputs import assemble_inputs
from .interfaces import IModule
from .module import StepResult
from .params import freeze_params
from .results import AutowireResult
from .validation import validate_modules
from .wiring import WireEntry

if TYPE_CHECKING:
    from simwire.collectors import CollectorConfig

logger = logging.getLogger(__name__)


@dataclass
class AutowireConfig:
    """
    Configuration of one autowired run.

    Attributes:
        modules: Modules in declaration order (the tie-break for the plan)
        wiring: Explicit wire entries; unwired inputs are matched to the
            same-named output at lag 0
        params: Module name -> partial parameter tree
        start_year: First simulated year (inclusive)
        end_year: Last simulated year (inclusive)
        track_reads: Audit transform reads against their declared reads
        collectors: Optional collector configuration applied on finalize
    """

    modules: list[IModule]
    wiring: list[WireEntry] = field(default_factory=list)
    params: dict[str, Mapping[str, Any]] = field(default_factory=dict)
    start_year: int = 2025
    end_year: int = 2100
    track_reads: bool = False
    collectors: CollectorConfig | None = None

    def years(self) -> list[int]:
        """Simulated years, start and end inclusive."""
        return list(range(self.start_year, self.end_year + 1))


@dataclass(frozen=True)
class AutowireState:
    """
    Run state between periods. Each step returns a new instance.

    Attributes:
        states: Module name -> module state
        last_outputs: Bags of the most recent period (None before the first period)
        period_index: Index of the next period to compute
        history: Per completed period, module name -> read-only output bag
        years: Years of the completed periods
        diagnostics: Diagnostics emitted so far
        state_history: Per completed period, module name -> state after the step
    """

    states: Mapping[str, Any]
    last_outputs: Mapping[str, Mapping[str, Any]] | None = None
    period_index: int = 0
    history: tuple[Mapping[str, Mapping[str, Any]], ...] = ()
    years: tuple[int, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()
    state_history: tuple[Mapping[str, Any], ...] = ()


class AutowireEngine:
    """
    Build-once, run-many engine for one configuration.

    Construction performs every static check: the execution plan (registry,
    wiring, connector types, cycles) and the validation of every module's
    merged parameters. Nothing executes until :meth:`init` is called.

    **Example Usage:**
        ```python
        engine = AutowireEngine(config)
        state = engine.init()
        for year in config.years():
            state = engine.step(state, year)
        result = engine.finalize(state)
        ```

    Raises:
        ConfigurationError: If the wiring cannot produce a plan, or ``params``
            names an unknown module
        ValidationError: If any module rejects its parameters (all modules
            are reported together)
    """

    def __init__(self, config: AutowireConfig):
        self.config = config
        self.plan: ExecutionPlan = build_execution_plan(config.modules, config.wiring)

        unknown = sorted(set(config.params or {}) - set(self.plan.order))
        if unknown:
            raise ConfigurationError(
                f"Parameters given for unknown module(s): {', '.join(unknown)}",
                problem_ids=unknown,
            )

        self._setup_diagnostics: list[Diagnostic] = []
        merged = validate_modules(
            list(config.modules), config.params, self._setup_diagnostics
        )
        self.params: dict[str, Mapping[str, Any]] = {
            name: freeze_params(tree) for name, tree in merged.items()
        }

    @property
    def order(self) -> tuple[str, ...]:
        return self.plan.order

    def init(self) -> AutowireState:
        """Initialize every module's state; the next period is period 0."""
        states: dict[str, Any] = {}
        for module in self.plan.modules():
            try:
                states[module.name] = module.init(self.params[module.name])
            except Exception as exc:
                raise RuntimeStepError(
                    module.name, self.config.start_year, 0, f"init failed: {exc}"
                ) from exc
        return AutowireState(
            states=states, diagnostics=tuple(self._setup_diagnostics)
        )

    def step(self, state: AutowireState, year: int) -> AutowireState:
        """
        Compute one period in plan order.

        Returns:
            New state with this period's bags appended to the history

        Raises:
            RuntimeStepError: If a module's step or one of its transforms
                raises; nothing from the failing period is recorded
        """
        period_index = state.period_index
        logger.debug("Period %d (year %d)", period_index, year)

        diagnostics = list(state.diagnostics)
        current: dict[str, Mapping[str, Any]] = {}
        states = dict(state.states)

        for module in self.plan.modules():
            name = module.name
            try:
                inputs = assemble_inputs(
                    self.plan,
                    name,
                    current,
                    state.last_outputs,
                    year,
                    period_index,
                    track_reads=self.config.track_reads,
                    diagnostics=diagnostics,
                )
                result = StepResult.coerce(
                    module.step(states[name], inputs, self.params[name], year, period_index)
                )
            except Exception as exc:
                raise RuntimeStepError(name, year, period_index, str(exc)) from exc

            missing = [f for f in module.outputs if f not in result.outputs]
            if missing:
                raise RuntimeStepError(
                    name,
                    year,
                    period_index,
                    f"step did not produce declared output(s): {', '.join(missing)}",
                )
            states[name] = result.state
            # shared by the history, the lag-1 cache and transforms
            current[name] = MappingProxyType(dict(result.outputs))

        bags = MappingProxyType(current)
        return AutowireState(
            states=states,
            last_outputs=bags,
            period_index=period_index + 1,
            history=state.history + (bags,),
            years=state.years + (year,),
            diagnostics=tuple(diagnostics),
            state_history=state.state_history + (MappingProxyType(dict(states)),),
        )

    def finalize(self, state: AutowireState) -> AutowireResult:
        """Package the history, applying the configured collectors if any."""
        result = AutowireResult(
            years=state.years,
            history=state.history,
            order=self.plan.order,
            diagnostics=state.diagnostics,
            states=state.state_history,
        )
        if self.config.collectors is None:
            return result

        from simwire.collectors import collect_results

        return replace(result, collected=collect_results(result, self.config.collectors))

    def run(self) -> AutowireResult:
        """Run every configured year and finalize."""
        years = self.config.years()
        logger.info(
            "Running %d modules from %d to %d",
            len(self.plan.order),
            self.config.start_year,
            self.config.end_year,
        )
        state = self.init()
        for year in years:
            state = self.step(state, year)
        logger.info("Run finished after %d periods", len(years))
        return self.finalize(state)


def run_autowired(config: AutowireConfig) -> AutowireResult:
    """Build the plan, validate parameters and run the whole year range."""
    return AutowireEngine(config).run()
