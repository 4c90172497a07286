"""
Raw run results: the per-period output history of an autowired run.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import pandas as pd

from .diagnostics import Diagnostic

if TYPE_CHECKING:
    from simwire.collectors import CollectedResults


@dataclass(frozen=True)
class AutowireResult:
    """
    Complete output history of a finished run.

    Attributes:
        years: Simulated years, one per period
        history: Per period, module name -> output bag
        order: Execution order the run used
        diagnostics: Every non-fatal diagnostic emitted during setup and the run
        collected: Collector output, when the run was configured with collectors
        states: Per period, module name -> module state after that period's step

    **Example Usage:**
        ```python
        result = run_autowired(config)
        result.time_series("climate", "temperature")   # [1.2, 1.21, ...]
        result.outputs_at(0)["climate.temperature"]      # 1.2
        df = result.to_frame()                           # years x (module, field)
        ```
    """

    years: tuple[int, ...]
    history: tuple[Mapping[str, Mapping[str, Any]], ...]
    order: tuple[str, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()
    collected: CollectedResults | None = None
    states: tuple[Mapping[str, Any], ...] = ()

    def __len__(self) -> int:
        return len(self.years)

    def state_series(self, module: str) -> list[Any]:
        """State of ``module`` after each period (empty if unknown)."""
        return [period[module] for period in self.states if module in period]

    def bag(self, module: str, period_index: int) -> Mapping[str, Any]:
        """Output bag of ``module`` at ``period_index``."""
        return self.history[period_index][module]

    def outputs_at(self, period_index: int) -> dict[str, Any]:
        """
        Flat view of every output at one period.

        Each value appears under its field name and under ``module.field``.
        """
        flat: dict[str, Any] = {}
        for module, bag in self.history[period_index].items():
            for field, value in bag.items():
                flat[field] = value
                flat[f"{module}.{field}"] = value
        return flat

    def time_series(self, module: str, field: str) -> list[Any]:
        """Values of one output across all periods (empty if never produced)."""
        if not self.history or field not in self.history[0].get(module, {}):
            return []
        return [period[module][field] for period in self.history]

    def to_frame(self) -> pd.DataFrame:
        """
        Year-indexed DataFrame with one ``(module, field)`` column per output.

        Mapping-valued outputs are kept as objects in their cell.
        """
        columns: dict[tuple[str, str], list[Any]] = {}
        if self.history:
            for module in self.order or self.history[0]:
                for field in self.history[0].get(module, {}):
                    columns[(module, field)] = self.time_series(module, field)
        df = pd.DataFrame(columns, index=pd.Index(list(self.years), name="year"))
        if columns:
            df.columns = pd.MultiIndex.from_tuples(list(columns), names=["module", "field"])
        return df
