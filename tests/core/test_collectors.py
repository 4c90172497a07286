"""
Tests for declarative result collection.
"""

import pandas as pd
import pytest

from simwire import (
    AutowireConfig,
    CollectorConfig,
    ConfigurationError,
    Custom,
    First,
    MetricDef,
    TimeseriesDef,
    collect_results,
    define_module,
    describe_outputs,
    run_autowired,
)
from simwire.collectors import aggregate


@pytest.fixture
def result():
    """Four periods of temperature and regional GDP."""
    temps = [1.2, 1.5, 1.4, 1.9]

    def climate(state, inputs, params, year, k):
        return state, {"temperature": temps[k]}

    def economy(state, inputs, params, year, k):
        return state, {"gdp": {"oecd": 10 + k, "asia": 5 + 2 * k}}

    return run_autowired(
        AutowireConfig(
            modules=[
                define_module("climate", climate, outputs=["temperature"]),
                define_module("economy", economy, outputs=["gdp"]),
            ],
            start_year=2025,
            end_year=2028,
        )
    )


class TestTimeseries:
    """Test TimeseriesDef extraction."""

    def test_source_and_rename(self, result):
        collected = collect_results(
            result,
            CollectorConfig(
                timeseries=[
                    TimeseriesDef("temperature"),
                    TimeseriesDef("climate.temperature", as_="temp"),
                ]
            ),
        )

        assert collected.years == [2025, 2026, 2027, 2028]
        assert collected.series["temperature"] == [1.2, 1.5, 1.4, 1.9]
        assert collected.series["temp"] == collected.series["temperature"]

    def test_nested_path(self, result):
        collected = collect_results(
            result, CollectorConfig(timeseries=[TimeseriesDef("gdp", as_="gdp_oecd", path="oecd")])
        )
        assert collected.series["gdp_oecd"] == [10, 11, 12, 13]

    def test_transform_sums_regions(self, result):
        total = TimeseriesDef(
            "gdp", as_="gdp_total", transform=lambda out, year, i: sum(out["gdp"].values())
        )
        collected = collect_results(result, CollectorConfig(timeseries=[total]))
        assert collected.series["gdp_total"] == [15, 18, 21, 24]

    def test_expand(self, result):
        collected = collect_results(
            result, CollectorConfig(timeseries=[TimeseriesDef("gdp", expand=True)])
        )
        assert collected.series == {
            "gdp.oecd": [10, 11, 12, 13],
            "gdp.asia": [5, 7, 9, 11],
        }

    def test_records_and_frame(self, result):
        collected = collect_results(
            result, CollectorConfig(timeseries=[TimeseriesDef("temperature", as_="t")])
        )

        assert collected.records()[1] == {"year": 2026, "t": 1.5}
        df = collected.to_frame()
        assert isinstance(df, pd.DataFrame)
        assert df.index.name == "year"
        assert df.loc[2028, "t"] == 1.9


class TestCollisions:
    """Test that key collisions are configuration errors."""

    def test_duplicate_series_key(self, result):
        config = CollectorConfig(
            timeseries=[TimeseriesDef("temperature"), TimeseriesDef("gdp", as_="temperature")]
        )
        with pytest.raises(ConfigurationError, match="Duplicate series key 'temperature'"):
            collect_results(result, config)

    def test_expanded_key_collision(self, result):
        config = CollectorConfig(
            timeseries=[
                TimeseriesDef("temperature", as_="gdp.oecd"),
                TimeseriesDef("gdp", expand=True),
            ]
        )
        with pytest.raises(ConfigurationError, match="'gdp.oecd' is produced by both"):
            collect_results(result, config)

    def test_duplicate_metric_name(self, result):
        config = CollectorConfig(
            timeseries=[TimeseriesDef("temperature")],
            metrics=[
                MetricDef("m", "last", source="temperature"),
                MetricDef("m", "max", source="temperature"),
            ],
        )
        with pytest.raises(ConfigurationError, match="Duplicate metric name 'm'"):
            collect_results(result, config)

    def test_unknown_output_source(self, result):
        config = CollectorConfig(timeseries=[TimeseriesDef("sea_level")])
        with pytest.raises(ConfigurationError, match="no output named 'sea_level'"):
            collect_results(result, config)

    def test_unknown_metric_series(self, result):
        config = CollectorConfig(metrics=[MetricDef("peak_t", "peak", source="temperature")])
        with pytest.raises(ConfigurationError, match="unknown series 'temperature'"):
            collect_results(result, config)

    def test_metric_needs_one_input(self, result):
        config = CollectorConfig(metrics=[MetricDef("m", "last")])
        with pytest.raises(ConfigurationError, match="exactly one of source or transform"):
            collect_results(result, config)

    def test_unknown_aggregator(self, result):
        config = CollectorConfig(
            timeseries=[TimeseriesDef("temperature")],
            metrics=[MetricDef("m", "median", source="temperature")],
        )
        with pytest.raises(ConfigurationError, match="unknown aggregator"):
            collect_results(result, config)


class TestMetrics:
    """Test MetricDef aggregation."""

    @pytest.fixture
    def config(self):
        return CollectorConfig(
            timeseries=[TimeseriesDef("temperature", as_="t")],
            metrics=[
                MetricDef("t_final", "last", source="t"),
                MetricDef("t_max", "max", source="t"),
                MetricDef("t_min", "min", source="t"),
                MetricDef("t_peak", "peak", source="t"),
                MetricDef("year_above_1_4", First(lambda v, year: v > 1.4), source="t"),
                MetricDef("never", First(lambda v, year: v > 10), source="t"),
                MetricDef("span", Custom(lambda values, years: years[-1] - years[0]), source="t"),
                MetricDef(
                    "asia_max",
                    "max",
                    transform=lambda out, year, i: out["economy.gdp"]["asia"],
                ),
            ],
        )

    def test_aggregators(self, result, config):
        metrics = collect_results(result, config).metrics

        assert metrics["t_final"] == 1.9
        assert metrics["t_max"] == 1.9
        assert metrics["t_min"] == 1.2
        assert metrics["t_peak"] == {"value": 1.9, "year": 2028}
        assert metrics["year_above_1_4"] == 2026
        assert metrics["never"] is None
        assert metrics["span"] == 3
        assert metrics["asia_max"] == 11.0

    def test_idempotent(self, result, config):
        """Collecting twice from the same history gives identical results."""
        assert collect_results(result, config) == collect_results(result, config)

    def test_collected_on_finalize(self, config):
        climate = define_module(
            "climate", lambda s, i, p, y, k: (s, {"temperature": 1.0 + k}), outputs=["temperature"]
        )
        economy = define_module(
            "economy", lambda s, i, p, y, k: (s, {"gdp": {"asia": k}}), outputs=["gdp"]
        )
        result = run_autowired(
            AutowireConfig(
                modules=[climate, economy], start_year=2025, end_year=2027, collectors=config
            )
        )

        assert result.collected.series["t"] == [1.0, 2.0, 3.0]
        assert result.collected.metrics["t_peak"] == {"value": 3.0, "year": 2027}

    def test_numeric_aggregators_ignore_non_numbers(self):
        values = [None, 3, "n/a", 7, True]
        years = [2025, 2026, 2027, 2028, 2029]

        assert aggregate(values, years, "max") == 7.0
        assert aggregate(values, years, "min") == 3.0
        assert aggregate(values, years, "peak") == {"value": 7, "year": 2028}
        assert aggregate([None], [2025], "max") is None
        assert aggregate([], [], "last") is None


class TestDescribeOutputs:
    """Test collector metadata introspection."""

    def test_describe(self):
        config = CollectorConfig(
            timeseries=[
                TimeseriesDef(
                    "temperature", unit="K", description="Warming since 1850", module="climate"
                ),
                TimeseriesDef("gdp", as_="output"),
            ]
        )
        assert describe_outputs(config) == {
            "temperature": {"unit": "K", "description": "Warming since 1850", "module": "climate"},
            "output": {"unit": None, "description": None, "module": None},
        }
