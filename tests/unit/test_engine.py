"""
tests/unit/test_engine.py
=========================
Tests for rulecheck/symbolic/engine.py — completeness, overlap and
constraint checks, result aggregation and the boolean query surface.
"""

import operator
from unittest.mock import patch

import pytest

from rulecheck.core.config import VerifierConfig
from rulecheck.core.exceptions import (
    IndeterminateResultError,
    TypeMismatchError,
    UndeclaredVariableError,
)
from rulecheck.core.expressions import (
    BinaryOp,
    BinaryOperator,
    Literal,
    UnaryOp,
    VariableRef,
    make_false,
    make_greater,
    make_implies,
    make_less,
    make_literal,
    make_not,
    make_or,
    make_true,
    make_var,
)
from rulecheck.core.rules import Rule, make_rule_set
from rulecheck.core.types import Variable, int_value, real_value
from rulecheck.symbolic import engine as engine_module
from rulecheck.symbolic.engine import (
    Verdict,
    VerificationEngine,
    completeness_counterexample,
    constraint_counterexamples,
    is_complete,
    is_overlapping,
    overlaps,
    satisfies_constraint,
)
from rulecheck.symbolic.solver import SolverOutcome, SolverSession

_ORDERINGS = {
    BinaryOperator.EQ: operator.eq,
    BinaryOperator.NE: operator.ne,
    BinaryOperator.LT: operator.lt,
    BinaryOperator.LE: operator.le,
    BinaryOperator.GT: operator.gt,
    BinaryOperator.GE: operator.ge,
}


def _evaluate(expr, assignment):
    """Evaluate ``expr`` by direct substitution, outside the solver."""
    if isinstance(expr, Literal):
        return expr.value.payload
    if isinstance(expr, VariableRef):
        return assignment[expr.variable.name]
    if isinstance(expr, UnaryOp):
        return not _evaluate(expr.operand, assignment)
    assert isinstance(expr, BinaryOp)
    left = _evaluate(expr.left, assignment)
    right = _evaluate(expr.right, assignment)
    if expr.op is BinaryOperator.AND:
        return left and right
    if expr.op is BinaryOperator.OR:
        return left or right
    if expr.op is BinaryOperator.IMPLIES:
        return (not left) or right
    return _ORDERINGS[expr.op](left, right)


@pytest.fixture
def x_rules(registry):
    """Single Integer input ``x`` and a rule builder."""
    x = Variable("x", registry.integer)

    def build(*thresholds, complete=False):
        # rules "x < t" for each threshold; optional catch-all "x >= max"
        ref = make_var(x)
        rules = [
            Rule(f"below_{t}", make_less(registry, ref, make_literal(int_value(registry, t))),
                 make_true(registry))
            for t in thresholds
        ]
        if complete:
            top = max(thresholds)
            rules.append(Rule(
                "rest",
                make_not(registry, make_less(registry, ref, make_literal(int_value(registry, top)))),
                make_true(registry),
            ))
        return make_rule_set("xs", [x], rules)
    return build


# ═══════════════════════════════════════════════════════════════════
#  Completeness
# ═══════════════════════════════════════════════════════════════════


class TestCompleteness:

    def test_tautological_cover_is_complete(self, engine, x_rules):
        rs = x_rules(10, complete=True)
        assert engine.is_complete(rs)
        assert engine.completeness_counterexample(rs) is None

    def test_zero_rules_is_incomplete(self, engine, registry):
        rs = make_rule_set("empty", [Variable("x", registry.real)])
        assert not engine.is_complete(rs)
        cx = engine.completeness_counterexample(rs)
        assert list(cx) == ["x"]

    def test_zero_rules_zero_variables(self, engine):
        rs = make_rule_set("nothing", [])
        result = engine.check_completeness(rs)
        assert result.verdict is Verdict.VIOLATED
        assert len(result.counterexample) == 0

    def test_gap_counterexample(self, engine, climate_rules):
        result = engine.check_completeness(climate_rules)
        assert result.verdict is Verdict.VIOLATED
        assert not result.holds
        assert result.rule_set == "climate"

    def test_counterexample_round_trip(self, engine, climate_rules, lights_rules):
        for rs in (climate_rules, lights_rules):
            cx = engine.completeness_counterexample(rs)
            assignment = cx.payloads()
            assert set(assignment) == {v.name for v in rs.variables}
            for rule in rs.rules:
                assert _evaluate(rule.precondition, assignment) is False

    def test_module_level_functions(self, climate_rules):
        assert is_complete(climate_rules) is False
        assert completeness_counterexample(climate_rules) is not None


# ═══════════════════════════════════════════════════════════════════
#  Overlap
# ═══════════════════════════════════════════════════════════════════


class TestOverlap:

    def test_single_rule_never_overlaps(self, engine, x_rules):
        rs = x_rules(3)
        assert not engine.is_overlapping(rs)
        assert engine.overlaps(rs) == []

    def test_disjoint_rules(self, engine, climate_rules, lights_rules):
        assert not engine.is_overlapping(climate_rules)
        assert not engine.is_overlapping(lights_rules)

    def test_overlapping_pairs_in_rule_order(self, engine, x_rules):
        rs = x_rules(1, 5, 9, complete=True)
        found = engine.overlaps(rs)
        pairs = [(a, b) for a, b, _ in found]
        assert pairs == [("below_1", "below_5"), ("below_1", "below_9"), ("below_5", "below_9")]
        for first, second, cx in found:
            assignment = cx.payloads()
            assert _evaluate(rs.rule(first).precondition, assignment)
            assert _evaluate(rs.rule(second).precondition, assignment)

    def test_identical_postconditions_still_overlap(self, engine, registry):
        x = Variable("x", registry.integer)
        zero = make_literal(int_value(registry, 0))
        pre = make_greater(registry, make_var(x), zero)
        rs = make_rule_set("twins", [x], [
            Rule("a", pre, make_true(registry)),
            Rule("b", pre, make_true(registry)),
        ])
        assert engine.is_overlapping(rs)

    def test_parallel_matches_sequential(self, engine, parallel_engine, x_rules):
        rs = x_rules(1, 5, 9, complete=True)
        sequential = [(a, b) for a, b, _ in engine.overlaps(rs)]
        parallel = [(a, b) for a, b, _ in parallel_engine.overlaps(rs)]
        assert parallel == sequential

    def test_module_level_functions(self, x_rules):
        rs = x_rules(1, 5)
        assert is_overlapping(rs) is True
        assert [(a, b) for a, b, _ in overlaps(rs)] == [("below_1", "below_5")]


# ═══════════════════════════════════════════════════════════════════
#  Constraints
# ═══════════════════════════════════════════════════════════════════


class TestConstraints:

    def test_true_always_holds(self, engine, registry, climate_rules, lights_rules, x_rules):
        for rs in (climate_rules, lights_rules, x_rules(2, 4)):
            assert engine.satisfies_constraint(rs, make_true(registry))

    def test_false_fails_for_every_satisfiable_rule(self, engine, registry, climate_rules):
        violators = engine.constraint_counterexamples(climate_rules, make_false(registry))
        assert [rule for rule, _ in violators] == list(climate_rules.rule_names)

    def test_constraint_over_outputs_holds(self, engine, registry, lights_rules, home_vars, state_is):
        warm_and_still = make_greater(
            registry, make_var(home_vars["temperature"]), make_literal(int_value(registry, 23))
        )
        constraint = make_implies(registry, warm_and_still, make_or(
            registry, state_is("stateOut", "OFF"), state_is("stateOut", "ON"),
        ))
        assert engine.satisfies_constraint(lights_rules, constraint)

    def test_violation_witness_breaks_constraint(self, engine, registry, lights_rules, state_is):
        constraint = make_not(registry, state_is("stateOut", "OFF"))
        found = engine.constraint_counterexamples(lights_rules, constraint)
        assert [rule for rule, _ in found] == ["too_warm_or_dark"]
        rule_name, cx = found[0]
        assignment = cx.payloads()
        rule = lights_rules.rule(rule_name)
        assert _evaluate(rule.precondition, assignment)
        assert _evaluate(rule.postcondition, assignment)
        assert not _evaluate(constraint, assignment)

    def test_result_object(self, engine, registry, lights_rules, state_is):
        result = engine.check_constraint(lights_rules, make_not(registry, state_is("stateOut", "ON")))
        assert result.verdict is Verdict.VIOLATED
        assert result.constraint == "not stateOut == STATE.ON"
        assert [v.rule for v in result.violations] == ["presence"]
        assert result.undecided == ()

    def test_constraint_must_be_boolean(self, engine, climate_rules, home_vars):
        with pytest.raises(TypeMismatchError):
            engine.satisfies_constraint(climate_rules, make_var(home_vars["motion"]))

    def test_constraint_must_stay_in_rule_set(self, engine, registry, climate_rules):
        humidity = Variable("humidity", registry.real)
        constraint = make_less(registry, make_var(humidity), make_literal(real_value(registry, 1)))
        with pytest.raises(UndeclaredVariableError):
            engine.check_constraint(climate_rules, constraint)

    def test_parallel_matches_sequential(self, engine, parallel_engine, registry, climate_rules):
        seq = engine.constraint_counterexamples(climate_rules, make_false(registry))
        par = parallel_engine.constraint_counterexamples(climate_rules, make_false(registry))
        assert [r for r, _ in par] == [r for r, _ in seq]

    def test_module_level_functions(self, registry, lights_rules):
        config = VerifierConfig(timeout_ms=10_000)
        assert satisfies_constraint(lights_rules, make_true(registry), config) is True
        assert constraint_counterexamples(lights_rules, make_true(registry), config) == []


# ═══════════════════════════════════════════════════════════════════
#  Indeterminate answers
# ═══════════════════════════════════════════════════════════════════


def _always_unknown(self):
    self._outcome = SolverOutcome.UNKNOWN
    return SolverOutcome.UNKNOWN


class TestIndeterminate:

    @pytest.fixture(autouse=True)
    def unknown_solver(self):
        with patch.object(SolverSession, "check", _always_unknown):
            yield

    def test_completeness_result_is_indeterminate(self, engine, climate_rules):
        result = engine.check_completeness(climate_rules)
        assert result.verdict is Verdict.INDETERMINATE
        assert result.counterexample is None

    def test_boolean_queries_raise(self, engine, registry, climate_rules):
        with pytest.raises(IndeterminateResultError) as info:
            engine.is_complete(climate_rules)
        assert info.value.check == "completeness"
        with pytest.raises(IndeterminateResultError):
            engine.completeness_counterexample(climate_rules)
        with pytest.raises(IndeterminateResultError):
            engine.is_overlapping(climate_rules)
        with pytest.raises(IndeterminateResultError):
            engine.overlaps(climate_rules)
        with pytest.raises(IndeterminateResultError):
            engine.satisfies_constraint(climate_rules, make_true(registry))
        with pytest.raises(IndeterminateResultError):
            engine.constraint_counterexamples(climate_rules, make_true(registry))

    def test_undecided_pairs_are_listed(self, engine, climate_rules):
        result = engine.check_overlap(climate_rules)
        assert result.verdict is Verdict.INDETERMINATE
        assert len(result.undecided) == 6
        assert result.overlaps == ()


def test_witness_beats_undecided(engine, x_rules):
    rs = x_rules(1, 5, 9)
    real_check = SolverSession.check

    def flaky(self):
        if self.label.endswith("below_5/below_9"):
            return _always_unknown(self)
        return real_check(self)

    with patch.object(SolverSession, "check", flaky):
        result = engine.check_overlap(rs)
    assert result.verdict is Verdict.VIOLATED
    assert result.undecided == (("below_5", "below_9"),)
    assert len(result.overlaps) == 2
    with patch.object(SolverSession, "check", flaky):
        with pytest.raises(IndeterminateResultError):
            engine.overlaps(rs)
    with patch.object(SolverSession, "check", flaky):
        assert engine.is_overlapping(rs) is True


# ═══════════════════════════════════════════════════════════════════
#  Full report
# ═══════════════════════════════════════════════════════════════════


def test_verify_combines_checks(engine, registry, lights_rules, state_is):
    report = engine.verify(lights_rules, [make_true(registry), state_is("stateOut", "ON")])
    assert report.rule_set == "lights"
    assert report.completeness.verdict is Verdict.VIOLATED
    assert report.overlap.verdict is Verdict.HOLDS
    assert [c.verdict for c in report.constraints] == [Verdict.HOLDS, Verdict.VIOLATED]
    assert report.verdict is Verdict.VIOLATED


def test_verify_holds_for_sound_rule_set(engine, x_rules):
    rs = x_rules(4, complete=True)
    report = engine.verify(rs)
    assert report.verdict is Verdict.HOLDS
    assert report.constraints == ()


def test_aggregate():
    assert engine_module._aggregate(False, False) is Verdict.HOLDS
    assert engine_module._aggregate(False, True) is Verdict.INDETERMINATE
    assert engine_module._aggregate(True, True) is Verdict.VIOLATED


def test_engine_defaults_to_default_config():
    assert VerificationEngine().config == VerifierConfig()
