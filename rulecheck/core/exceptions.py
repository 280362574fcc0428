"""
rulecheck/core/exceptions.py
============================
Custom exception hierarchy for rulecheck.

All exceptions carry structured context so callers can
programmatically handle different failure modes.

Taxonomy:
    ConstructionError        — bad input model, raised while building it
    InternalConsistencyError — engine defect, aborts the query
    IndeterminateResultError — solver answered UNKNOWN (or timed out)
    SolverBackendError       — solver unavailable or failed
    DeclarationError         — malformed declaration file / expression text
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from rulecheck.core.types import Type


class RuleCheckError(Exception):
    """Base exception for all rulecheck errors."""

    def __init__(self, message: str, context: Optional[dict] = None):
        super().__init__(message)
        self.context = context or {}


# ─── CONSTRUCTION ERRORS ──────────────────────────────────────────


class ConstructionError(RuleCheckError):
    """Raised synchronously while building types, expressions or rule sets.

    Never raised at query time. Not retryable: the input model must be fixed.
    """


class InvalidNameError(ConstructionError):
    """Raised when a type, variable, rule or rule-set name is not an identifier."""


class DuplicateValueError(ConstructionError):
    """Raised when an enumeration declares the same value name twice."""

    def __init__(self, message: str, type_name: str, value_name: str):
        super().__init__(message, {"type": type_name, "value": value_name})
        self.type_name = type_name
        self.value_name = value_name


class EmptyEnumerationError(ConstructionError):
    """Raised when an enumeration is declared without any value."""


class DuplicateTypeError(ConstructionError):
    """Raised when a registry already holds a different type with the same name."""


class TypeMismatchError(ConstructionError):
    """Raised when an expression's operand types violate the typing rules.

    Carries the expected and actual types plus the offending sub-expression.
    ``expected`` is a human-readable description when more than one type
    would have been acceptable (e.g. "Integer or Real").
    """

    def __init__(
        self,
        message: str,
        expected: Any,
        actual: Optional["Type"],
        expression: Any = None,
    ):
        super().__init__(
            message,
            context={
                "expected": str(expected),
                "actual": str(actual),
                "expression": str(expression) if expression is not None else None,
            },
        )
        self.expected = expected
        self.actual = actual
        self.expression = expression


class UnknownEnumValueError(TypeMismatchError):
    """Raised when an enumeration literal names a value outside its type."""


class DuplicateRuleNameError(ConstructionError):
    """Raised when two rules of one rule set share a name."""

    def __init__(self, message: str, rule_name: str, rule_set: str):
        super().__init__(message, {"rule": rule_name, "rule_set": rule_set})
        self.rule_name = rule_name
        self.rule_set = rule_set


class DuplicateVariableError(ConstructionError):
    """Raised when two variables of one rule set share a name."""


class UndeclaredVariableError(ConstructionError):
    """Raised when a rule references a variable its rule set does not declare."""

    def __init__(self, message: str, variable_name: str, rule_set: str, rule: Optional[str] = None):
        super().__init__(
            message,
            {"variable": variable_name, "rule_set": rule_set, "rule": rule},
        )
        self.variable_name = variable_name
        self.rule_set = rule_set
        self.rule = rule


# ─── QUERY-TIME ERRORS ────────────────────────────────────────────


class InternalConsistencyError(RuleCheckError):
    """Raised when the compiler or decoder hits a state that well-typed
    input can never produce. Indicates an engine defect."""


class IndeterminateResultError(RuleCheckError):
    """Raised by boolean queries when the solver answered UNKNOWN.

    The result objects of the engine report this case as
    ``Verdict.INDETERMINATE`` instead of raising.
    """

    def __init__(self, message: str, check: str, reason: str = ""):
        super().__init__(message, {"check": check, "reason": reason})
        self.check = check
        self.reason = reason


class SolverBackendError(RuleCheckError):
    """Raised when the solver backend fails (unavailable, exhausted, crashed).

    The engine never retries; callers may retry at session level.
    """


# ─── DECLARATION ERRORS ───────────────────────────────────────────


class DeclarationError(RuleCheckError):
    """Raised when a module declaration is structurally invalid."""


class ExpressionSyntaxError(DeclarationError):
    """Raised when rule expression text cannot be parsed."""

    def __init__(self, message: str, source: str, position: int):
        super().__init__(
            f"{message} at position {position} in {source!r}",
            {"source": source, "position": position},
        )
        self.source = source
        self.position = position
