"""rulecheck/symbolic — Formula compilation and solver-backed verification."""

from rulecheck.symbolic.compiler import FormulaCompiler
from rulecheck.symbolic.decoder import Counterexample, decode_model
from rulecheck.symbolic.engine import (
    CompletenessResult,
    ConstraintResult,
    ConstraintViolation,
    Overlap,
    OverlapResult,
    Verdict,
    VerificationEngine,
    VerificationReport,
    completeness_counterexample,
    constraint_counterexamples,
    is_complete,
    is_overlapping,
    overlaps,
    satisfies_constraint,
)
from rulecheck.symbolic.explanation import (
    format_counterexample,
    format_verification_report,
    summarize,
)
from rulecheck.symbolic.solver import SolverOutcome, SolverSession

__all__ = [
    "FormulaCompiler",
    "Counterexample",
    "decode_model",
    "SolverSession",
    "SolverOutcome",
    "VerificationEngine",
    "Verdict",
    "CompletenessResult",
    "OverlapResult",
    "Overlap",
    "ConstraintResult",
    "ConstraintViolation",
    "VerificationReport",
    "is_complete",
    "completeness_counterexample",
    "is_overlapping",
    "overlaps",
    "satisfies_constraint",
    "constraint_counterexamples",
    "format_counterexample",
    "format_verification_report",
    "summarize",
]
