"""
Error classes for SimWire.

This module defines the exception hierarchy raised by the autowiring engine.
Configuration and validation problems are detected before any period runs;
step errors abort a run at the period where they happen.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .validation import WiringReport


class AutowireError(Exception):
    """Base class for every error raised by the autowiring engine."""


class ConfigurationError(AutowireError):
    """
    Fatal wiring or collector configuration error.

    Raised before any simulated period executes when the static configuration
    cannot produce a single, unambiguous execution plan.

    **Common Causes:**
    - Two modules declaring the same output field
    - Connector type mismatch between a producer and a consumer
    - A cycle among same-period (lag 0) dependencies
    - An input with no wiring entry and no same-named producer
    - Duplicate collector series or metric names

    Attributes:
        errors: Every problem found, one human-readable line each
        problem_ids: Module (or series) ids involved in the problems
        report: The structured wiring report, when one was built
    """

    def __init__(
        self,
        message: str,
        errors: list[str] | None = None,
        problem_ids: list[str] | None = None,
        report: WiringReport | None = None,
    ):
        self.errors = list(errors) if errors else [message]
        self.problem_ids = list(dict.fromkeys(problem_ids or []))
        self.report = report
        super().__init__(self._fmt(message))

    def _fmt(self, msg: str) -> str:
        """Format the error message with the full error list and problem ids."""
        lines = [f"[Autowire] {msg}"]
        if len(self.errors) > 1 or self.errors[0] != msg:
            lines.extend(f"  - {err}" for err in self.errors)
        if self.problem_ids:
            preview = ", ".join(self.problem_ids[:10])
            more = (
                f" (+{len(self.problem_ids) - 10} more)"
                if len(self.problem_ids) > 10
                else ""
            )
            lines[0] += f" | problem_ids: [{preview}]{more}"
        return "\n".join(lines)


class CycleError(ConfigurationError):
    """
    Same-period dependency cycle.

    Feedback between modules must be expressed through a lagged (lag=1) wire,
    never through a same-period edge.

    Attributes:
        cycle: Module names forming the cycle, in dependency order
    """

    def __init__(self, cycle: list[str], report: WiringReport | None = None):
        self.cycle = list(cycle)
        path = " -> ".join(self.cycle + self.cycle[:1])
        super().__init__(
            f"Same-period dependency cycle: {path}. "
            "Wire one of these connections with lag=1 to break it.",
            problem_ids=self.cycle,
            report=report,
        )


class ValidationError(AutowireError):
    """
    One or more modules rejected their parameters.

    Errors from every module are aggregated before this is raised, so a single
    failure reports all invalid parameters at once.

    Attributes:
        errors_by_module: Module name -> list of validation errors
    """

    def __init__(self, errors_by_module: dict[str, list[str]]):
        self.errors_by_module = {k: list(v) for k, v in errors_by_module.items()}
        lines = ["Invalid module parameters:"]
        for name, errors in self.errors_by_module.items():
            for err in errors:
                lines.append(f"  [{name}] {err}")
        super().__init__("\n".join(lines))

    @property
    def errors(self) -> list[str]:
        """Flat list of ``[module] error`` strings."""
        return [
            f"[{name}] {err}"
            for name, errors in self.errors_by_module.items()
            for err in errors
        ]


class RuntimeStepError(AutowireError):
    """
    An exception escaped a module while a period was being computed.

    The run stops at this period; nothing from the failing period is recorded.
    The original exception is available as ``__cause__``.

    Attributes:
        module: Name of the module whose step (or input assembly) failed
        year: Simulated year being computed
        period_index: Zero-based period index being computed
    """

    def __init__(self, module: str, year: int, period_index: int, message: str):
        self.module = module
        self.year = year
        self.period_index = period_index
        super().__init__(
            f"Module '{module}' failed in year {year} (period {period_index}): {message}"
        )
