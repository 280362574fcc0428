"""
rulecheck/symbolic/explanation.py
=================================
Verification results → human-readable text.

This module is the bridge between the engine's result objects and the
developer-facing CLI output:

    CompletenessResult ─┐
    OverlapResult      ─┼─▸ format_verification_report() ──▸ str
    ConstraintResult   ─┘
"""

from __future__ import annotations

from typing import List, Optional

from rulecheck.symbolic.decoder import Counterexample
from rulecheck.symbolic.engine import (
    CompletenessResult,
    ConstraintResult,
    OverlapResult,
    Verdict,
    VerificationReport,
)

_MARKS = {
    Verdict.HOLDS:         "OK",
    Verdict.VIOLATED:      "FAIL",
    Verdict.INDETERMINATE: "UNKNOWN",
}


def format_counterexample(counterexample: Optional[Counterexample]) -> str:
    """``a = 1, b = 0.1, state = ON`` in declaration order."""
    if counterexample is None:
        return "(none)"
    if not counterexample:
        return "(any input)"
    return ", ".join(f"{name} = {value}" for name, value in counterexample.items())


def describe_completeness(result: CompletenessResult) -> List[str]:
    lines = [f"[{_MARKS[result.verdict]}] completeness"]
    if result.verdict is Verdict.VIOLATED:
        lines.append("    no rule applies to: " + format_counterexample(result.counterexample))
    elif result.verdict is Verdict.INDETERMINATE:
        lines.append(f"    solver could not decide ({result.reason or 'unknown'})")
    return lines


def describe_overlap(result: OverlapResult) -> List[str]:
    lines = [f"[{_MARKS[result.verdict]}] no overlapping rules"]
    for overlap in result.overlaps:
        lines.append(
            f"    '{overlap.first}' and '{overlap.second}' both apply to: "
            + format_counterexample(overlap.counterexample)
        )
    for first, second in result.undecided:
        lines.append(f"    '{first}' / '{second}': undecided")
    return lines


def describe_constraint(result: ConstraintResult) -> List[str]:
    lines = [f"[{_MARKS[result.verdict]}] constraint: {result.constraint}"]
    for violation in result.violations:
        lines.append(
            f"    rule '{violation.rule}' violates it with: "
            + format_counterexample(violation.counterexample)
        )
    for rule in result.undecided:
        lines.append(f"    rule '{rule}': undecided")
    return lines


def format_verification_report(report: VerificationReport) -> str:
    """Format a full report for one rule set.

    Sections:
        1. Header with rule-set name
        2. One block per check, with witnesses for failed checks
        3. Summary line
    """
    lines = [
        "=" * 60,
        f"  Rule set '{report.rule_set}'",
        "=" * 60,
    ]
    lines.extend(describe_completeness(report.completeness))
    lines.extend(describe_overlap(report.overlap))
    for constraint in report.constraints:
        lines.extend(describe_constraint(constraint))
    lines.append("")
    lines.append(f"── {summarize(report)}")
    lines.append("=" * 60)
    return "\n".join(lines)


def summarize(report: VerificationReport) -> str:
    checks = 2 + len(report.constraints)
    failed = sum(
        1
        for verdict in [report.completeness.verdict, report.overlap.verdict]
        + [c.verdict for c in report.constraints]
        if verdict is Verdict.VIOLATED
    )
    return f"{report.rule_set}: {report.verdict.value} ({failed}/{checks} check(s) failed)"
