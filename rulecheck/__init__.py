"""
rulecheck/__init__.py — Public API exports
"""

from rulecheck.core.config import VerifierConfig
from rulecheck.core.exceptions import (
    ConstructionError,
    DeclarationError,
    DuplicateRuleNameError,
    DuplicateTypeError,
    DuplicateValueError,
    DuplicateVariableError,
    EmptyEnumerationError,
    ExpressionSyntaxError,
    IndeterminateResultError,
    InternalConsistencyError,
    InvalidNameError,
    RuleCheckError,
    SolverBackendError,
    TypeMismatchError,
    UndeclaredVariableError,
    UnknownEnumValueError,
)
from rulecheck.core.expressions import (
    BinaryOp,
    BinaryOperator,
    Expression,
    Literal,
    UnaryOp,
    UnaryOperator,
    VariableRef,
    conjunction,
    disjunction,
    free_variables,
    make_and,
    make_binary,
    make_equal,
    make_false,
    make_greater,
    make_greater_equal,
    make_implies,
    make_less,
    make_less_equal,
    make_literal,
    make_not,
    make_not_equal,
    make_or,
    make_true,
    make_var,
    render,
)
from rulecheck.core.rules import Module, Rule, RuleSet, make_rule_set
from rulecheck.core.types import (
    Type,
    TypeKind,
    TypeRegistry,
    Value,
    Variable,
    bool_value,
    enum_value,
    int_value,
    real_value,
)
from rulecheck.declaration import DeclarationLoader, parse_expression
from rulecheck.symbolic import (
    CompletenessResult,
    ConstraintResult,
    ConstraintViolation,
    Counterexample,
    Overlap,
    OverlapResult,
    Verdict,
    VerificationEngine,
    VerificationReport,
    completeness_counterexample,
    constraint_counterexamples,
    format_verification_report,
    is_complete,
    is_overlapping,
    overlaps,
    satisfies_constraint,
)
from rulecheck.version import __version__

__all__ = [
    "__version__",
    # types
    "Type",
    "TypeKind",
    "TypeRegistry",
    "Value",
    "Variable",
    "int_value",
    "real_value",
    "bool_value",
    "enum_value",
    # expressions
    "Expression",
    "Literal",
    "VariableRef",
    "UnaryOp",
    "BinaryOp",
    "UnaryOperator",
    "BinaryOperator",
    "make_literal",
    "make_var",
    "make_true",
    "make_false",
    "make_not",
    "make_binary",
    "make_and",
    "make_or",
    "make_implies",
    "make_equal",
    "make_not_equal",
    "make_less",
    "make_less_equal",
    "make_greater",
    "make_greater_equal",
    "conjunction",
    "disjunction",
    "free_variables",
    "render",
    # rules
    "Rule",
    "RuleSet",
    "Module",
    "make_rule_set",
    # verification
    "VerifierConfig",
    "VerificationEngine",
    "Verdict",
    "Counterexample",
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
    "format_verification_report",
    # declarations
    "DeclarationLoader",
    "parse_expression",
    # errors
    "RuleCheckError",
    "ConstructionError",
    "InvalidNameError",
    "DuplicateValueError",
    "DuplicateTypeError",
    "EmptyEnumerationError",
    "TypeMismatchError",
    "UnknownEnumValueError",
    "DuplicateRuleNameError",
    "DuplicateVariableError",
    "UndeclaredVariableError",
    "InternalConsistencyError",
    "IndeterminateResultError",
    "SolverBackendError",
    "DeclarationError",
    "ExpressionSyntaxError",
]
