"""
Integration test: a coupled economy / energy / climate loop.

This test exercises the major features together:
- Autowired same-period dependencies
- Climate damage feedback closed by a lagged wire
- A transform aggregating regional values
- Connector types on both sides of each wire
- Collectors producing series and metrics
"""

import pytest

from simwire import (
    AutowireConfig,
    CollectorConfig,
    CycleError,
    First,
    MetricDef,
    Module,
    StepResult,
    TimeseriesDef,
    Transform,
    ValidationResult,
    WireEntry,
    run_autowired,
)


class Economy(Module):
    name = "economy"
    description = "Regional output reduced by last year's climate damages"
    defaults = {"growth": {"oecd": 0.015, "asia": 0.04}, "initial": {"oecd": 60.0, "asia": 40.0}}
    inputs = ["damages"]
    outputs = ["gdp"]
    connector_types = {
        "inputs": {"damages": "scalar"},
        "outputs": {"gdp": "flat-mapping"},
    }

    def validate(self, params):
        errors = [f"growth for {r} must be > -1" for r, g in params["growth"].items() if g <= -1]
        return ValidationResult.from_messages(errors)

    def init(self, params):
        return dict(params["initial"])

    def step(self, state, inputs, params, year, period_index):
        gdp = {
            region: value * (1 + params["growth"][region]) * (1 - inputs["damages"])
            for region, value in state.items()
        }
        return StepResult(gdp, {"gdp": gdp})


class Energy(Module):
    name = "energy"
    defaults = {"intensity": 0.5, "decarbonization": 0.02}
    inputs = ["world_gdp"]
    outputs = ["emissions"]
    connector_types = {"inputs": {"world_gdp": "scalar"}, "outputs": {"emissions": "scalar"}}

    def init(self, params):
        return params["intensity"]

    def step(self, state, inputs, params, year, period_index):
        intensity = state * (1 - params["decarbonization"])
        return StepResult(intensity, {"emissions": inputs["world_gdp"] * intensity})


class Climate(Module):
    name = "climate"
    defaults = {"tcre": 0.0005, "damage_coefficient": 0.0023, "initial_temperature": 1.2}
    inputs = ["emissions"]
    outputs = ["temperature", "damages"]
    connector_types = {
        "inputs": {"emissions": "scalar"},
        "outputs": {"temperature": "scalar", "damages": "scalar"},
    }

    def init(self, params):
        return params["initial_temperature"]

    def step(self, state, inputs, params, year, period_index):
        temperature = state + params["tcre"] * inputs["emissions"]
        damages = params["damage_coefficient"] * temperature**2
        return StepResult(temperature, {"temperature": temperature, "damages": damages})


def _world_gdp(bags, year, period_index):
    return sum(bags["economy"]["gdp"].values())


def _config(**overrides):
    settings = dict(
        modules=[Climate(), Energy(), Economy()],
        wiring=[
            WireEntry("economy", "damages", "damages", lag=1),
            WireEntry("energy", "world_gdp", Transform(_world_gdp, reads=["gdp"])),
        ],
        start_year=2025,
        end_year=2100,
        collectors=CollectorConfig(
            timeseries=[
                TimeseriesDef("temperature", unit="K", module="climate"),
                TimeseriesDef("gdp", expand=True),
                TimeseriesDef(
                    "gdp", as_="world_gdp", transform=lambda out, y, i: sum(out["gdp"].values())
                ),
            ],
            metrics=[
                MetricDef("final_temperature", "last", source="temperature"),
                MetricDef("peak_temperature", "peak", source="temperature"),
                MetricDef("year_above_1_5", First(lambda v, y: v > 1.5), source="temperature"),
            ],
        ),
    )
    settings.update(overrides)
    return AutowireConfig(**settings)


class TestFeedbackLoop:
    """Coupled loop running the full default horizon."""

    def test_plan_order(self):
        result = run_autowired(_config())
        assert result.order == ("economy", "energy", "climate")

    def test_full_run(self):
        result = run_autowired(_config())

        assert len(result) == 76
        assert result.years[0] == 2025
        assert result.years[-1] == 2100

        temps = result.time_series("climate", "temperature")
        assert all(b > a for a, b in zip(temps, temps[1:]))

        collected = result.collected
        assert collected.metrics["final_temperature"] == temps[-1]
        assert collected.metrics["peak_temperature"]["year"] == 2100
        assert set(collected.series) == {"temperature", "gdp.oecd", "gdp.asia", "world_gdp"}

    def test_damages_lag_one_period(self):
        """Economy at period n sees the damages climate produced at n-1 (0.0 at period 0)."""
        result = run_autowired(_config(end_year=2030))

        damages = result.time_series("climate", "damages")
        gdp = result.time_series("economy", "gdp")
        initial = Economy.defaults["initial"]
        growth = Economy.defaults["growth"]

        assert gdp[0]["oecd"] == pytest.approx(initial["oecd"] * (1 + growth["oecd"]))
        for n in range(1, len(gdp)):
            expected = gdp[n - 1]["oecd"] * (1 + growth["oecd"]) * (1 - damages[n - 1])
            assert gdp[n]["oecd"] == pytest.approx(expected)

    def test_same_period_feedback_rejected(self):
        """Wiring the damage feedback at lag 0 closes a same-period loop."""
        config = _config(
            wiring=[
                WireEntry("economy", "damages", "damages"),
                WireEntry("energy", "world_gdp", Transform(_world_gdp, reads=["gdp"])),
            ]
        )
        with pytest.raises(CycleError) as exc_info:
            run_autowired(config)

        assert set(exc_info.value.cycle) == {"economy", "energy", "climate"}

    def test_deterministic(self):
        first = run_autowired(_config(end_year=2040))
        second = run_autowired(_config(end_year=2040))
        assert first.history == second.history
        assert first.collected == second.collected

    def test_frame_export(self):
        df = run_autowired(_config(end_year=2027)).to_frame()
        assert list(df.index) == [2025, 2026, 2027]
        assert ("climate", "temperature") in df.columns
