"""
Problem / solve separation.

A SimulationProblem is an inert definition; ``solve`` runs it to completion
and ``init`` returns a Stepper for period-by-period execution.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NamedTuple

from .results import AutowireResult
from .runner import AutowireConfig, AutowireEngine, AutowireState


@dataclass(frozen=True)
class SimulationProblem:
    """Inert simulation definition: holds the configuration, computes nothing."""

    config: AutowireConfig


class YearOutputs(NamedTuple):
    """Outputs of one stepped year."""

    year: int
    outputs: dict[str, Any]
    done: bool


def define_simulation(config: AutowireConfig) -> SimulationProblem:
    """Define a simulation problem (no computation performed)."""
    return SimulationProblem(config)


def solve(problem: SimulationProblem) -> AutowireResult:
    """Run a simulation problem to completion."""
    return AutowireEngine(problem.config).run()


def init(problem: SimulationProblem) -> Stepper:
    """
    Build the engine and initialize module states for interactive stepping.

    All static checks run here, so a misconfigured problem fails before the
    first ``step()``.
    """
    return Stepper(AutowireEngine(problem.config))


class Stepper:
    """
    Interactive step-by-step runner over the configured year range.

    **Example Usage:**
        ```python
        stepper = init(define_simulation(config))
        while not stepper.done:
            year, outputs, _ = stepper.step()
            print(year, outputs["temperature"])
        result = stepper.result()
        ```
    """

    def __init__(self, engine: AutowireEngine):
        self._engine = engine
        self._state: AutowireState = engine.init()
        self._years = engine.config.years()

    @property
    def year(self) -> int:
        """Next year to be stepped."""
        return self._engine.config.start_year + self._state.period_index

    @property
    def done(self) -> bool:
        return self._state.period_index >= len(self._years)

    @property
    def state(self) -> AutowireState:
        return self._state

    def step(self) -> YearOutputs:
        """
        Advance one year.

        Raises:
            RuntimeError: If every configured year has already been stepped
        """
        if self.done:
            raise RuntimeError("All configured years have been simulated")
        year = self.year
        self._state = self._engine.step(self._state, year)
        return YearOutputs(year, self.outputs(), self.done)

    def outputs(self) -> dict[str, Any]:
        """Flat outputs of the most recent period (empty before the first step)."""
        if not self._state.history:
            return {}
        return _partial_result(self._state).outputs_at(self._state.period_index - 1)

    def result(self) -> AutowireResult:
        """Finalize over every year stepped so far."""
        return self._engine.finalize(self._state)


def _partial_result(state: AutowireState) -> AutowireResult:
    return AutowireResult(years=state.years, history=state.history)
