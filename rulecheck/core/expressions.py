"""
rulecheck/core/expressions.py
=============================
Typed expression AST for rule preconditions, postconditions and
user constraints.

The node set is closed:

    Literal(value)                  — typed constant
    VariableRef(variable)           — reference to a declared Variable
    UnaryOp(NOT, operand)           — Boolean negation
    BinaryOp(op, left, right)       — connective, equality or ordering

Nodes are frozen dataclasses and must be built through the ``make_*``
constructors, which type-check eagerly and raise TypeMismatchError:

    AND, OR, IMPLIES        Boolean × Boolean → Boolean
    EQ, NE                  T × T → Boolean          (any T, same instance)
    LT, LE, GT, GE          N × N → Boolean          (N ∈ {Integer, Real})

There is no Integer/Real coercion: ``x_int < 0.5`` is rejected.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Sequence, Tuple, Union

from rulecheck.core.exceptions import InternalConsistencyError, TypeMismatchError
from rulecheck.core.types import Type, TypeRegistry, Value, Variable, bool_value


# ─────────────────────────────────────────────
#  OPERATORS
# ─────────────────────────────────────────────

class UnaryOperator(Enum):
    NOT = "not"


class BinaryOperator(Enum):
    AND     = "and"
    OR      = "or"
    IMPLIES = "implies"
    EQ      = "=="
    NE      = "!="
    LT      = "<"
    LE      = "<="
    GT      = ">"
    GE      = ">="


CONNECTIVES = frozenset({BinaryOperator.AND, BinaryOperator.OR, BinaryOperator.IMPLIES})
EQUALITIES  = frozenset({BinaryOperator.EQ, BinaryOperator.NE})
ORDERINGS   = frozenset({
    BinaryOperator.LT, BinaryOperator.LE, BinaryOperator.GT, BinaryOperator.GE,
})

# Binding strength used by render(); higher binds tighter.
_PRECEDENCE = {
    BinaryOperator.IMPLIES: 1,
    BinaryOperator.OR:      2,
    BinaryOperator.AND:     3,
    BinaryOperator.EQ:      5,
    BinaryOperator.NE:      5,
    BinaryOperator.LT:      5,
    BinaryOperator.LE:      5,
    BinaryOperator.GT:      5,
    BinaryOperator.GE:      5,
}
_NOT_PRECEDENCE = 4


# ─────────────────────────────────────────────
#  NODES
# ─────────────────────────────────────────────

@dataclass(frozen=True)
class Literal:
    value: Value

    @property
    def type(self) -> Type:
        return self.value.type

    def __str__(self) -> str:
        return render(self)


@dataclass(frozen=True)
class VariableRef:
    variable: Variable

    @property
    def type(self) -> Type:
        return self.variable.type

    def __str__(self) -> str:
        return render(self)


@dataclass(frozen=True)
class UnaryOp:
    op:      UnaryOperator
    operand: "Expression"
    type:    Type

    def __str__(self) -> str:
        return render(self)


@dataclass(frozen=True)
class BinaryOp:
    op:    BinaryOperator
    left:  "Expression"
    right: "Expression"
    type:  Type

    def __str__(self) -> str:
        return render(self)


Expression = Union[Literal, VariableRef, UnaryOp, BinaryOp]


# ─────────────────────────────────────────────
#  CONSTRUCTORS
# ─────────────────────────────────────────────

def make_literal(value: Value) -> Literal:
    return Literal(value)


def make_var(variable: Variable) -> VariableRef:
    return VariableRef(variable)


def make_true(registry: TypeRegistry) -> Literal:
    return Literal(bool_value(registry, True))


def make_false(registry: TypeRegistry) -> Literal:
    return Literal(bool_value(registry, False))


def _require_boolean(registry: TypeRegistry, expr: Expression, where: str) -> None:
    if expr.type is not registry.boolean:
        raise TypeMismatchError(
            f"{where} requires a Boolean operand, got {expr.type.name} in '{expr}'.",
            expected=registry.boolean,
            actual=expr.type,
            expression=expr,
        )


def make_not(registry: TypeRegistry, operand: Expression) -> UnaryOp:
    _require_boolean(registry, operand, "not")
    return UnaryOp(UnaryOperator.NOT, operand, registry.boolean)


def make_binary(
    registry: TypeRegistry,
    op: BinaryOperator,
    left: Expression,
    right: Expression,
) -> BinaryOp:
    """Type-check and build any binary node."""
    if op in CONNECTIVES:
        _require_boolean(registry, left, op.value)
        _require_boolean(registry, right, op.value)
    elif op in EQUALITIES:
        if left.type is not right.type:
            raise TypeMismatchError(
                f"'{op.value}' compares {left.type.name} with {right.type.name} "
                f"in '{left} {op.value} {right}'.",
                expected=left.type,
                actual=right.type,
                expression=right,
            )
    elif op in ORDERINGS:
        for side in (left, right):
            if not side.type.is_numeric:
                raise TypeMismatchError(
                    f"'{op.value}' is only defined on Integer or Real, "
                    f"got {side.type.name} in '{side}'.",
                    expected="Integer or Real",
                    actual=side.type,
                    expression=side,
                )
        if left.type is not right.type:
            raise TypeMismatchError(
                f"'{op.value}' mixes {left.type.name} and {right.type.name} "
                f"in '{left} {op.value} {right}'; no implicit coercion.",
                expected=left.type,
                actual=right.type,
                expression=right,
            )
    else:  # pragma: no cover
        raise InternalConsistencyError(f"Unknown operator {op!r}")
    return BinaryOp(op, left, right, registry.boolean)


def make_and(registry: TypeRegistry, left: Expression, right: Expression) -> BinaryOp:
    return make_binary(registry, BinaryOperator.AND, left, right)


def make_or(registry: TypeRegistry, left: Expression, right: Expression) -> BinaryOp:
    return make_binary(registry, BinaryOperator.OR, left, right)


def make_implies(registry: TypeRegistry, left: Expression, right: Expression) -> BinaryOp:
    return make_binary(registry, BinaryOperator.IMPLIES, left, right)


def make_equal(registry: TypeRegistry, left: Expression, right: Expression) -> BinaryOp:
    return make_binary(registry, BinaryOperator.EQ, left, right)


def make_not_equal(registry: TypeRegistry, left: Expression, right: Expression) -> BinaryOp:
    return make_binary(registry, BinaryOperator.NE, left, right)


def make_less(registry: TypeRegistry, left: Expression, right: Expression) -> BinaryOp:
    return make_binary(registry, BinaryOperator.LT, left, right)


def make_less_equal(registry: TypeRegistry, left: Expression, right: Expression) -> BinaryOp:
    return make_binary(registry, BinaryOperator.LE, left, right)


def make_greater(registry: TypeRegistry, left: Expression, right: Expression) -> BinaryOp:
    return make_binary(registry, BinaryOperator.GT, left, right)


def make_greater_equal(registry: TypeRegistry, left: Expression, right: Expression) -> BinaryOp:
    return make_binary(registry, BinaryOperator.GE, left, right)


def conjunction(registry: TypeRegistry, operands: Iterable[Expression]) -> Expression:
    """Left-folded AND; the empty conjunction is ``true``."""
    items = list(operands)
    if not items:
        return make_true(registry)
    result = items[0]
    _require_boolean(registry, result, "and")
    for item in items[1:]:
        result = make_and(registry, result, item)
    return result


def disjunction(registry: TypeRegistry, operands: Iterable[Expression]) -> Expression:
    """Left-folded OR; the empty disjunction is ``false``."""
    items = list(operands)
    if not items:
        return make_false(registry)
    result = items[0]
    _require_boolean(registry, result, "or")
    for item in items[1:]:
        result = make_or(registry, result, item)
    return result


# ─────────────────────────────────────────────
#  TRAVERSAL
# ─────────────────────────────────────────────

def free_variables(expr: Expression) -> Tuple[Variable, ...]:
    """Variables referenced by ``expr``, in first-occurrence order."""
    found: List[Variable] = []
    stack: List[Expression] = [expr]
    while stack:
        node = stack.pop()
        if isinstance(node, VariableRef):
            if node.variable not in found:
                found.append(node.variable)
        elif isinstance(node, UnaryOp):
            stack.append(node.operand)
        elif isinstance(node, BinaryOp):
            stack.append(node.right)
            stack.append(node.left)
        elif not isinstance(node, Literal):
            raise InternalConsistencyError(
                f"Not an expression node: {node!r}",
                context={"node_type": type(node).__name__},
            )
    return tuple(found)


def free_variables_of(exprs: Sequence[Expression]) -> Tuple[Variable, ...]:
    found: List[Variable] = []
    for expr in exprs:
        for var in free_variables(expr):
            if var not in found:
                found.append(var)
    return tuple(found)


def render(expr: Expression, parent_precedence: int = 0) -> str:
    """Infix text in the declaration syntax understood by the parser."""
    if isinstance(expr, Literal):
        if expr.type.is_enumeration:
            return f"{expr.type.name}.{expr.value.payload}"
        return str(expr.value)
    if isinstance(expr, VariableRef):
        return expr.variable.name
    if isinstance(expr, UnaryOp):
        text = f"not {render(expr.operand, _NOT_PRECEDENCE)}"
        precedence = _NOT_PRECEDENCE
    elif isinstance(expr, BinaryOp):
        precedence = _PRECEDENCE[expr.op]
        if expr.op is BinaryOperator.IMPLIES:
            # right-associative
            left = render(expr.left, precedence + 1)
            right = render(expr.right, precedence)
        elif expr.op in CONNECTIVES:
            left = render(expr.left, precedence)
            right = render(expr.right, precedence + 1)
        else:
            left = render(expr.left, precedence + 1)
            right = render(expr.right, precedence + 1)
        text = f"{left} {expr.op.value} {right}"
    else:
        raise InternalConsistencyError(
            f"Not an expression node: {expr!r}",
            context={"node_type": type(expr).__name__},
        )
    if precedence < parent_precedence:
        return f"({text})"
    return text
