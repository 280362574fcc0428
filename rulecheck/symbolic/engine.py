"""
rulecheck/symbolic/engine.py
============================
VerificationEngine: completeness, overlap and constraint checks over a
RuleSet, each expressed as satisfiability queries.

Encodings (pre_r / post_r = precondition / postcondition of rule r):

    completeness   SAT?  ⋀_r ¬pre_r
                   — a model is an input no rule covers
    overlap        SAT?  pre_i ∧ pre_j            for every pair i < j
                   — a model is an input two rules both accept
    constraint C   SAT?  pre_r ∧ post_r ∧ ¬C      for every rule r
                   — a model is an outcome of r that breaks C

"Property holds for all inputs" is thus decided as UNSAT of its negation.
UNKNOWN (timeout, resource limit) is reported as INDETERMINATE and is
never folded into either answer.

Every query opens its own SolverSession, so queries share nothing but
the immutable rule set and may run on worker threads
(VerifierConfig.max_workers > 1).
"""

from __future__ import annotations

import itertools
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

import z3

from rulecheck.core.config import DEFAULT_CONFIG, VerifierConfig
from rulecheck.core.exceptions import IndeterminateResultError
from rulecheck.core.expressions import Expression, render
from rulecheck.core.rules import RuleSet
from rulecheck.symbolic.compiler import FormulaCompiler
from rulecheck.symbolic.decoder import Counterexample, decode_model
from rulecheck.symbolic.solver import SolverOutcome, SolverSession

logger = logging.getLogger(__name__)

FormulaBuilder = Callable[[FormulaCompiler], List[z3.BoolRef]]


# ─────────────────────────────────────────────
#  RESULTS
# ─────────────────────────────────────────────

class Verdict(Enum):
    HOLDS         = "holds"
    VIOLATED      = "violated"
    INDETERMINATE = "indeterminate"


@dataclass(frozen=True)
class QueryAnswer:
    """Outcome of one solver query."""
    label:          str
    outcome:        SolverOutcome
    counterexample: Optional[Counterexample] = None
    reason:         str = ""     # solver's reason_unknown on UNKNOWN


@dataclass(frozen=True)
class CompletenessResult:
    rule_set:       str
    verdict:        Verdict
    counterexample: Optional[Counterexample] = None
    reason:         str = ""

    @property
    def holds(self) -> bool:
        return self.verdict is Verdict.HOLDS


@dataclass(frozen=True)
class Overlap:
    """Two rules whose preconditions both hold on ``counterexample``."""
    first:          str
    second:         str
    counterexample: Counterexample


@dataclass(frozen=True)
class OverlapResult:
    rule_set:  str
    verdict:   Verdict
    overlaps:  Tuple[Overlap, ...] = ()
    undecided: Tuple[Tuple[str, str], ...] = ()   # pairs the solver could not decide

    @property
    def holds(self) -> bool:
        return self.verdict is Verdict.HOLDS


@dataclass(frozen=True)
class ConstraintViolation:
    """An outcome of ``rule`` that violates the checked constraint."""
    rule:           str
    counterexample: Counterexample


@dataclass(frozen=True)
class ConstraintResult:
    rule_set:   str
    constraint: str
    verdict:    Verdict
    violations: Tuple[ConstraintViolation, ...] = ()
    undecided:  Tuple[str, ...] = ()   # rules the solver could not decide

    @property
    def holds(self) -> bool:
        return self.verdict is Verdict.HOLDS


@dataclass(frozen=True)
class VerificationReport:
    """All checks run against one rule set."""
    rule_set:     str
    completeness: CompletenessResult
    overlap:      OverlapResult
    constraints:  Tuple[ConstraintResult, ...] = field(default_factory=tuple)

    @property
    def verdict(self) -> Verdict:
        verdicts = [self.completeness.verdict, self.overlap.verdict]
        verdicts.extend(c.verdict for c in self.constraints)
        if Verdict.VIOLATED in verdicts:
            return Verdict.VIOLATED
        if Verdict.INDETERMINATE in verdicts:
            return Verdict.INDETERMINATE
        return Verdict.HOLDS


def _aggregate(found: bool, undecided: bool) -> Verdict:
    # A witness is conclusive even if other sub-queries were undecided.
    if found:
        return Verdict.VIOLATED
    if undecided:
        return Verdict.INDETERMINATE
    return Verdict.HOLDS


# ─────────────────────────────────────────────
#  ENGINE
# ─────────────────────────────────────────────

class VerificationEngine:
    """Static verification of rule sets.

    Usage:
        engine = VerificationEngine(VerifierConfig(timeout_ms=5000))
        result = engine.check_completeness(rule_set)
        if result.verdict is Verdict.VIOLATED:
            print(result.counterexample)
    """

    def __init__(self, config: Optional[VerifierConfig] = None):
        self.config = config or DEFAULT_CONFIG

    # ─── QUERY PLUMBING ────────────────────────────────────────────

    def _run_query(self, rule_set: RuleSet, label: str, build: FormulaBuilder) -> QueryAnswer:
        """compile → assert → solve → decode, inside a fresh session."""
        session = SolverSession(self.config, label=label)
        compiler = FormulaCompiler(rule_set, session)
        compiler.declare_all()
        for formula in build(compiler):
            session.add(formula)

        outcome = session.check()
        if outcome is SolverOutcome.SAT:
            return QueryAnswer(label, outcome, decode_model(session.model(), compiler))
        if outcome is SolverOutcome.UNKNOWN:
            return QueryAnswer(label, outcome, reason=session.reason_unknown())
        return QueryAnswer(label, outcome)

    def _run_queries(
        self, rule_set: RuleSet, jobs: Sequence[Tuple[str, FormulaBuilder]]
    ) -> List[QueryAnswer]:
        """Run independent queries; answers come back in job order."""
        if self.config.max_workers > 1 and len(jobs) > 1:
            workers = min(self.config.max_workers, len(jobs))
            with ThreadPoolExecutor(max_workers=workers) as pool:
                return list(pool.map(lambda job: self._run_query(rule_set, *job), jobs))
        return [self._run_query(rule_set, label, build) for label, build in jobs]

    # ─── COMPLETENESS ──────────────────────────────────────────────

    def check_completeness(self, rule_set: RuleSet) -> CompletenessResult:
        """Is every input covered by at least one rule's precondition?"""
        def build(compiler: FormulaCompiler) -> List[z3.BoolRef]:
            return [z3.Not(compiler.compile(r.precondition)) for r in rule_set.rules]

        answer = self._run_query(rule_set, f"completeness:{rule_set.name}", build)
        if answer.outcome is SolverOutcome.UNSAT:
            result = CompletenessResult(rule_set.name, Verdict.HOLDS)
        elif answer.outcome is SolverOutcome.SAT:
            result = CompletenessResult(
                rule_set.name, Verdict.VIOLATED, counterexample=answer.counterexample
            )
        else:
            result = CompletenessResult(
                rule_set.name, Verdict.INDETERMINATE, reason=answer.reason
            )
        logger.info("Completeness of '%s': %s", rule_set.name, result.verdict.value)
        return result

    def _decided_completeness(self, rule_set: RuleSet) -> CompletenessResult:
        result = self.check_completeness(rule_set)
        if result.verdict is Verdict.INDETERMINATE:
            raise IndeterminateResultError(
                f"Completeness of '{rule_set.name}' could not be decided: {result.reason}",
                check="completeness",
                reason=result.reason,
            )
        return result

    def is_complete(self, rule_set: RuleSet) -> bool:
        return self._decided_completeness(rule_set).holds

    def completeness_counterexample(self, rule_set: RuleSet) -> Optional[Counterexample]:
        """An input no rule covers, or None if the rule set is complete."""
        return self._decided_completeness(rule_set).counterexample

    # ─── OVERLAP ───────────────────────────────────────────────────

    def check_overlap(self, rule_set: RuleSet) -> OverlapResult:
        """Can two distinct rules fire on the same input?

        Overlap is simultaneous precondition applicability; whether the
        two postconditions agree does not matter.
        """
        pairs = list(itertools.combinations(rule_set.rules, 2))

        def pair_builder(first, second) -> FormulaBuilder:
            return lambda compiler: [
                compiler.compile(first.precondition),
                compiler.compile(second.precondition),
            ]

        jobs = [
            (f"overlap:{rule_set.name}:{a.name}/{b.name}", pair_builder(a, b))
            for a, b in pairs
        ]
        answers = self._run_queries(rule_set, jobs)

        overlaps: List[Overlap] = []
        undecided: List[Tuple[str, str]] = []
        for (a, b), answer in zip(pairs, answers):
            if answer.outcome is SolverOutcome.SAT:
                overlaps.append(Overlap(a.name, b.name, answer.counterexample))
            elif answer.outcome is SolverOutcome.UNKNOWN:
                undecided.append((a.name, b.name))

        result = OverlapResult(
            rule_set.name,
            _aggregate(bool(overlaps), bool(undecided)),
            overlaps=tuple(overlaps),
            undecided=tuple(undecided),
        )
        logger.info(
            "Overlap of '%s': %s (%d pair(s) checked, %d overlapping, %d undecided)",
            rule_set.name, result.verdict.value, len(pairs), len(overlaps), len(undecided),
        )
        return result

    def is_overlapping(self, rule_set: RuleSet) -> bool:
        result = self.check_overlap(rule_set)
        if result.verdict is Verdict.INDETERMINATE:
            raise IndeterminateResultError(
                f"Overlap of '{rule_set.name}' could not be decided for "
                f"{len(result.undecided)} pair(s).",
                check="overlap",
                reason=", ".join(f"{a}/{b}" for a, b in result.undecided),
            )
        return result.verdict is Verdict.VIOLATED

    def overlaps(self, rule_set: RuleSet) -> List[Tuple[str, str, Counterexample]]:
        """Every overlapping pair (in rule order) with a witness input."""
        result = self.check_overlap(rule_set)
        if result.undecided:
            raise IndeterminateResultError(
                f"Overlap list of '{rule_set.name}' is incomplete: "
                f"{len(result.undecided)} pair(s) undecided.",
                check="overlap",
                reason=", ".join(f"{a}/{b}" for a, b in result.undecided),
            )
        return [(o.first, o.second, o.counterexample) for o in result.overlaps]

    # ─── CONSTRAINT SATISFACTION ───────────────────────────────────

    def check_constraint(self, rule_set: RuleSet, constraint: Expression) -> ConstraintResult:
        """Does ``constraint`` hold for every outcome of every rule?

        Raises TypeMismatchError / UndeclaredVariableError if the
        constraint is not a Boolean expression over the rule set.
        """
        rule_set.check_expression(constraint)

        def rule_builder(rule) -> FormulaBuilder:
            return lambda compiler: [
                compiler.compile(rule.precondition),
                compiler.compile(rule.postcondition),
                z3.Not(compiler.compile(constraint)),
            ]

        jobs = [
            (f"constraint:{rule_set.name}:{rule.name}", rule_builder(rule))
            for rule in rule_set.rules
        ]
        answers = self._run_queries(rule_set, jobs)

        violations: List[ConstraintViolation] = []
        undecided: List[str] = []
        for rule, answer in zip(rule_set.rules, answers):
            if answer.outcome is SolverOutcome.SAT:
                violations.append(ConstraintViolation(rule.name, answer.counterexample))
            elif answer.outcome is SolverOutcome.UNKNOWN:
                undecided.append(rule.name)

        result = ConstraintResult(
            rule_set.name,
            render(constraint),
            _aggregate(bool(violations), bool(undecided)),
            violations=tuple(violations),
            undecided=tuple(undecided),
        )
        logger.info(
            "Constraint '%s' on '%s': %s (%d violating rule(s))",
            result.constraint, rule_set.name, result.verdict.value, len(violations),
        )
        return result

    def satisfies_constraint(self, rule_set: RuleSet, constraint: Expression) -> bool:
        result = self.check_constraint(rule_set, constraint)
        if result.verdict is Verdict.INDETERMINATE:
            raise IndeterminateResultError(
                f"Constraint '{result.constraint}' on '{rule_set.name}' could not "
                f"be decided for rule(s) {list(result.undecided)}.",
                check="constraint",
                reason=", ".join(result.undecided),
            )
        return result.holds

    def constraint_counterexamples(
        self, rule_set: RuleSet, constraint: Expression
    ) -> List[Tuple[str, Counterexample]]:
        """Per violating rule (in rule order), an outcome breaking ``constraint``."""
        result = self.check_constraint(rule_set, constraint)
        if result.undecided:
            raise IndeterminateResultError(
                f"Violation list for '{result.constraint}' on '{rule_set.name}' is "
                f"incomplete: rule(s) {list(result.undecided)} undecided.",
                check="constraint",
                reason=", ".join(result.undecided),
            )
        return [(v.rule, v.counterexample) for v in result.violations]

    # ─── ALL CHECKS ────────────────────────────────────────────────

    def verify(
        self, rule_set: RuleSet, constraints: Sequence[Expression] = ()
    ) -> VerificationReport:
        """Run completeness, overlap and every given constraint."""
        report = VerificationReport(
            rule_set=rule_set.name,
            completeness=self.check_completeness(rule_set),
            overlap=self.check_overlap(rule_set),
            constraints=tuple(self.check_constraint(rule_set, c) for c in constraints),
        )
        logger.info("Verification of '%s': %s", rule_set.name, report.verdict.value)
        return report


# ─────────────────────────────────────────────
#  MODULE-LEVEL QUERY SURFACE
# ─────────────────────────────────────────────

def is_complete(rule_set: RuleSet, config: Optional[VerifierConfig] = None) -> bool:
    return VerificationEngine(config).is_complete(rule_set)


def completeness_counterexample(
    rule_set: RuleSet, config: Optional[VerifierConfig] = None
) -> Optional[Counterexample]:
    return VerificationEngine(config).completeness_counterexample(rule_set)


def is_overlapping(rule_set: RuleSet, config: Optional[VerifierConfig] = None) -> bool:
    return VerificationEngine(config).is_overlapping(rule_set)


def overlaps(
    rule_set: RuleSet, config: Optional[VerifierConfig] = None
) -> List[Tuple[str, str, Counterexample]]:
    return VerificationEngine(config).overlaps(rule_set)


def satisfies_constraint(
    rule_set: RuleSet, constraint: Expression, config: Optional[VerifierConfig] = None
) -> bool:
    return VerificationEngine(config).satisfies_constraint(rule_set, constraint)


def constraint_counterexamples(
    rule_set: RuleSet, constraint: Expression, config: Optional[VerifierConfig] = None
) -> List[Tuple[str, Counterexample]]:
    return VerificationEngine(config).constraint_counterexamples(rule_set, constraint)
