"""
Shared toy modules for the SimWire test suite.
"""

import pytest

from simwire import define_module


def counter_step(state, inputs, params, year, period_index):
    """Outputs x = period index."""
    return state, {"x": period_index}


def doubler_step(state, inputs, params, year, period_index):
    """Outputs y = 2 * x."""
    return state, {"y": inputs["x"] * 2}


@pytest.fixture
def counter():
    """Module A: no inputs, outputs x = period index."""
    return define_module("A", counter_step, outputs=["x"])


@pytest.fixture
def doubler():
    """Module B: input x, outputs y = 2 * x."""
    return define_module("B", doubler_step, inputs=["x"], outputs=["y"])


@pytest.fixture
def recorder():
    """
    Factory for modules that record every input bag they receive.

    Returns ``(module, seen)``; ``seen`` is appended to on every step.
    """

    def make(name, inputs, outputs=("out",)):
        seen = []

        def step(state, inp, params, year, period_index):
            seen.append(dict(inp))
            return state, {field: period_index for field in outputs}

        return define_module(name, step, inputs=list(inputs), outputs=list(outputs)), seen

    return make
