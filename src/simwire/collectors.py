"""
Declarative result collection for autowired runs.

Collectors flatten the raw per-period output history into named time series
and reduce those series to summary metrics. All functions are pure: the same
result and configuration always produce the same collection.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd

from .core.errors import ConfigurationError
from .core.params import get_path
from .core.results import AutowireResult

SeriesTransform = Callable[[Mapping[str, Any], int, int], Any]


@dataclass(frozen=True)
class TimeseriesDef:
    """
    Rule extracting one named series (or a family of series) per period.

    Attributes:
        source: Output key in the flat per-period view (``field`` or ``module.field``)
        as_: Series name; defaults to ``source``
        path: Dot-path into a nested output value (e.g., ``'copper.demand'``)
        transform: ``fn(outputs, year, period_index)`` computing the value from
            the whole flat view; ``source`` and ``path`` are then ignored
        expand: Split a mapping value into one series per key, named ``name.key``
        unit: Unit for introspection (e.g., 'K', 'TWh')
        description: Human-readable description for introspection
        module: Originating module for introspection
    """

    source: str
    as_: str | None = None
    path: str | None = None
    transform: SeriesTransform | None = None
    expand: bool = False
    unit: str | None = None
    description: str | None = None
    module: str | None = None

    @property
    def key(self) -> str:
        return self.as_ or self.source


@dataclass(frozen=True)
class First:
    """Aggregator: first year whose value satisfies ``predicate(value, year)``."""

    predicate: Callable[[Any, int], bool]


@dataclass(frozen=True)
class Custom:
    """Aggregator: ``fn(values, years)`` over the whole series."""

    fn: Callable[[list[Any], list[int]], Any]


Aggregator = str | First | Custom

AGGREGATORS = ("last", "max", "min", "peak")


@dataclass(frozen=True)
class MetricDef:
    """
    Rule reducing one series to a summary value.

    Attributes:
        as_: Metric name
        aggregator: ``'last'``, ``'max'``, ``'min'``, ``'peak'`` (value and year
            of the maximum), ``First(predicate)`` or ``Custom(fn)``
        source: Series name to reduce
        transform: ``fn(outputs, year, period_index)`` computing the per-period
            values directly from the flat view, instead of ``source``
    """

    as_: str
    aggregator: Aggregator
    source: str | None = None
    transform: SeriesTransform | None = None


@dataclass
class CollectorConfig:
    """Collector configuration: series rules, then metric rules."""

    timeseries: list[TimeseriesDef] = field(default_factory=list)
    metrics: list[MetricDef] = field(default_factory=list)


@dataclass
class CollectedResults:
    """
    Output of :func:`collect_results`.

    Attributes:
        years: Simulated years
        series: Series name -> one value per year
        metrics: Metric name -> summary value
    """

    years: list[int]
    series: dict[str, list[Any]]
    metrics: dict[str, Any]

    def records(self) -> list[dict[str, Any]]:
        """Per-year records: ``{"year": ..., <series>: ...}``."""
        return [
            {"year": year, **{name: values[i] for name, values in self.series.items()}}
            for i, year in enumerate(self.years)
        ]

    def to_frame(self) -> pd.DataFrame:
        """Year-indexed DataFrame with one column per series."""
        return pd.DataFrame(self.series, index=pd.Index(self.years, name="year"))


def collect_results(result: AutowireResult, config: CollectorConfig) -> CollectedResults:
    """
    Apply every series rule, then every metric rule, to a finished run.

    Raises:
        ConfigurationError: On duplicate series or metric names, unknown
            series sources, or invalid metric definitions
    """
    _check_config(config)
    years = list(result.years)
    views = [result.outputs_at(i) for i in range(len(years))]

    series: dict[str, list[Any]] = {}
    owners: dict[str, str] = {}
    problems: list[str] = []
    ids: list[str] = []
    for ts in config.timeseries:
        if ts.transform is None and views and ts.source not in views[0]:
            problems.append(f"Timeseries '{ts.key}': no output named '{ts.source}'")
            ids.append(ts.key)
            continue
        values = [_extract(ts, views[i], year, i) for i, year in enumerate(years)]
        produced = _expand(ts.key, values) if ts.expand else {ts.key: values}
        for name, column in produced.items():
            if name in series:
                problems.append(
                    f"Series key '{name}' is produced by both '{owners[name]}' "
                    f"and '{ts.key}'"
                )
                ids.append(name)
                continue
            owners[name] = ts.key
            series[name] = column
    if problems:
        raise ConfigurationError(
            "Collector configuration is invalid", errors=problems, problem_ids=ids
        )

    metrics: dict[str, Any] = {}
    for metric in config.metrics:
        if metric.transform is not None:
            values = [metric.transform(views[i], year, i) for i, year in enumerate(years)]
        elif metric.source in series:
            values = series[metric.source]
        else:
            raise ConfigurationError(
                f"Metric '{metric.as_}' reads unknown series '{metric.source}'",
                problem_ids=[metric.as_],
            )
        metrics[metric.as_] = aggregate(values, years, metric.aggregator)

    return CollectedResults(years=years, series=series, metrics=metrics)


def aggregate(values: Sequence[Any], years: Sequence[int], aggregator: Aggregator) -> Any:
    """
    Reduce a series to one value.

    ``max``, ``min`` and ``peak`` consider numeric values only and return
    None when there are none.
    """
    if isinstance(aggregator, First):
        for value, year in zip(values, years):
            if aggregator.predicate(value, year):
                return year
        return None
    if isinstance(aggregator, Custom):
        return aggregator.fn(list(values), list(years))
    if aggregator == "last":
        return values[-1] if len(values) else None

    idx = [i for i, v in enumerate(values) if _is_number(v)]
    if not idx:
        return {"value": None, "year": None} if aggregator == "peak" else None
    numeric = np.asarray([values[i] for i in idx], dtype=float)
    if aggregator == "max":
        return float(np.max(numeric))
    if aggregator == "min":
        return float(np.min(numeric))
    if aggregator == "peak":
        best = idx[int(np.argmax(numeric))]
        return {"value": values[best], "year": years[best]}
    raise ConfigurationError(f"Unknown aggregator {aggregator!r}")


def describe_outputs(config: CollectorConfig) -> dict[str, dict[str, str | None]]:
    """Unit, description and originating module of every configured series."""
    return {
        ts.key: {"unit": ts.unit, "description": ts.description, "module": ts.module}
        for ts in config.timeseries
    }


def _check_config(config: CollectorConfig) -> None:
    problems: list[str] = []
    ids: list[str] = []

    seen: set[str] = set()
    for ts in config.timeseries:
        if ts.key in seen:
            problems.append(f"Duplicate series key '{ts.key}'")
            ids.append(ts.key)
        seen.add(ts.key)

    seen = set()
    for metric in config.metrics:
        if metric.as_ in seen:
            problems.append(f"Duplicate metric name '{metric.as_}'")
            ids.append(metric.as_)
        seen.add(metric.as_)
        if (metric.source is None) == (metric.transform is None):
            problems.append(f"Metric '{metric.as_}' needs exactly one of source or transform")
            ids.append(metric.as_)
        agg = metric.aggregator
        if not isinstance(agg, (First, Custom)) and agg not in AGGREGATORS:
            problems.append(f"Metric '{metric.as_}' has unknown aggregator {agg!r}")
            ids.append(metric.as_)

    if problems:
        raise ConfigurationError(
            "Collector configuration is invalid", errors=problems, problem_ids=ids
        )


def _extract(ts: TimeseriesDef, outputs: Mapping[str, Any], year: int, index: int) -> Any:
    if ts.transform is not None:
        return ts.transform(outputs, year, index)
    value = outputs.get(ts.source)
    if ts.path and isinstance(value, Mapping):
        return get_path(value, ts.path)
    return value


def _expand(key: str, values: list[Any]) -> dict[str, list[Any]]:
    subkeys: dict[str, None] = {}
    for value in values:
        if isinstance(value, Mapping):
            subkeys.update(dict.fromkeys(value))
    return {
        f"{key}.{sub}": [v.get(sub) if isinstance(v, Mapping) else None for v in values]
        for sub in subkeys
    }


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, np.number)) and not isinstance(value, bool)
