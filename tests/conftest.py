"""
tests/conftest.py
==================
Shared pytest fixtures for all rulecheck tests.

The smart-home vocabulary mirrors examples/smart_home.yaml:

    temperature, temperatureGoal : Integer
    motion, brightness           : Real
    state, stateOut              : STATE {ON, OFF, STANDBY}
"""

from pathlib import Path

import pytest

from rulecheck.core.config import VerifierConfig
from rulecheck.core.expressions import (
    make_and,
    make_equal,
    make_greater,
    make_greater_equal,
    make_less,
    make_less_equal,
    make_literal,
    make_or,
    make_var,
)
from rulecheck.core.rules import Module, Rule, make_rule_set
from rulecheck.core.types import (
    TypeRegistry,
    Variable,
    enum_value,
    int_value,
    real_value,
)
from rulecheck.symbolic.engine import VerificationEngine

EXAMPLES_DIR = Path(__file__).resolve().parent.parent / "examples"


# ─── TYPES & VARIABLES ────────────────────────────────────────────


@pytest.fixture
def registry():
    return TypeRegistry()


@pytest.fixture
def state_type(registry):
    return registry.enumeration("STATE", ["ON", "OFF", "STANDBY"])


@pytest.fixture
def home_vars(registry, state_type):
    """name → Variable for the smart-home vocabulary."""
    return {
        "temperature":     Variable("temperature", registry.integer),
        "temperatureGoal": Variable("temperatureGoal", registry.integer),
        "motion":          Variable("motion", registry.real),
        "brightness":      Variable("brightness", registry.real),
        "state":           Variable("state", state_type),
        "stateOut":        Variable("stateOut", state_type),
    }


@pytest.fixture
def state_is(registry, state_type, home_vars):
    """``state_is("stateOut", "OFF")`` → ``stateOut == STATE.OFF``."""
    def build(var_name, value_name):
        return make_equal(
            registry,
            make_var(home_vars[var_name]),
            make_literal(enum_value(state_type, value_name)),
        )
    return build


# ─── RULE SETS ────────────────────────────────────────────────────


@pytest.fixture
def climate_rules(registry, home_vars, state_is):
    """Four disjoint rules leaving ``motion = 0.1 ∧ temperature ≥ goal`` uncovered."""
    temp = make_var(home_vars["temperature"])
    goal = make_var(home_vars["temperatureGoal"])
    motion = make_var(home_vars["motion"])
    tenth = make_literal(real_value(registry, "0.1"))

    cold = make_less(registry, temp, goal)
    warm = make_greater_equal(registry, temp, goal)
    return make_rule_set(
        "climate",
        home_vars.values(),
        [
            Rule(
                "cold_idle",
                make_and(registry, cold, make_less_equal(registry, motion, tenth)),
                state_is("stateOut", "STANDBY"),
            ),
            Rule(
                "cold_active",
                make_and(registry, cold, make_greater(registry, motion, tenth)),
                state_is("stateOut", "ON"),
            ),
            Rule(
                "warm_idle",
                make_and(registry, warm, make_less(registry, motion, tenth)),
                state_is("stateOut", "OFF"),
            ),
            Rule(
                "warm_active",
                make_and(registry, warm, make_greater(registry, motion, tenth)),
                make_equal(registry, make_var(home_vars["stateOut"]), make_var(home_vars["state"])),
            ),
        ],
    )


@pytest.fixture
def lights_rules(registry, home_vars, state_is):
    """Disjoint, incomplete: nothing covers temperature ≤ 23, motion ≥ 0.3, brightness < 0.1."""
    temp = make_var(home_vars["temperature"])
    motion = make_var(home_vars["motion"])
    brightness = make_var(home_vars["brightness"])
    t23 = make_literal(int_value(registry, 23))
    m03 = make_literal(real_value(registry, "0.3"))
    b01 = make_literal(real_value(registry, "0.1"))

    variables = [home_vars[n] for n in ("temperature", "motion", "brightness", "state", "stateOut")]
    return make_rule_set(
        "lights",
        variables,
        [
            Rule(
                "too_warm_or_dark",
                make_and(
                    registry,
                    make_greater(registry, temp, t23),
                    make_or(
                        registry,
                        make_less(registry, motion, m03),
                        make_less(registry, brightness, b01),
                    ),
                ),
                state_is("stateOut", "OFF"),
            ),
            Rule(
                "presence",
                make_and(
                    registry,
                    make_greater_equal(registry, motion, m03),
                    make_greater_equal(registry, brightness, b01),
                ),
                state_is("stateOut", "ON"),
            ),
            Rule(
                "quiet",
                make_and(
                    registry,
                    make_less_equal(registry, temp, t23),
                    make_less(registry, motion, m03),
                ),
                state_is("stateOut", "STANDBY"),
            ),
        ],
    )


@pytest.fixture
def home_module(registry, state_type, climate_rules, lights_rules):
    return Module(
        name="smart_home",
        registry=registry,
        types={"STATE": state_type},
        rule_sets={"climate": climate_rules, "lights": lights_rules},
    )


# ─── ENGINE ───────────────────────────────────────────────────────


@pytest.fixture
def engine():
    return VerificationEngine()


@pytest.fixture
def parallel_engine():
    return VerificationEngine(VerifierConfig(max_workers=4))


@pytest.fixture
def smart_home_yaml():
    return EXAMPLES_DIR / "smart_home.yaml"
