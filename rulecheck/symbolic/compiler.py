"""
rulecheck/symbolic/compiler.py
==============================
Formula compiler — lowers a rule set's variables and typed expressions
into Z3 formulas inside one solver session.

Sort mapping:
    Integer               → Int
    Real                  → Real
    Boolean               → Bool
    Enumeration(T, vs)    → finite sort T with one distinct constant per value

Z3 supports finite sorts natively, so enumerations need no integer
encoding and no companion domain constraints: every model value of an
enumeration sort is one of its declared constants.

One compiler = one compilation environment = one query. Symbols are
cached, so every reference to a variable compiles to the same constant.
"""
from __future__ import annotations

import logging
from typing import Dict

import z3

from rulecheck.core.exceptions import InternalConsistencyError
from rulecheck.core.expressions import (
    BinaryOp,
    BinaryOperator,
    Expression,
    Literal,
    UnaryOp,
    UnaryOperator,
    VariableRef,
)
from rulecheck.core.rules import RuleSet
from rulecheck.core.types import Type, TypeKind, Value, Variable
from rulecheck.symbolic.solver import SolverSession

logger = logging.getLogger(__name__)


class FormulaCompiler:
    """Compilation environment for one verification query."""

    def __init__(self, rule_set: RuleSet, session: SolverSession):
        self.rule_set = rule_set
        self.session = session
        self._sorts: Dict[Type, z3.SortRef] = {}
        self._enum_constants: Dict[Type, Dict[str, z3.ExprRef]] = {}
        self._enum_decoding: Dict[Type, Dict[str, str]] = {}  # decl name → value name
        self._symbols: Dict[Variable, z3.ExprRef] = {}

    # ─── SORTS ─────────────────────────────────────────────────────

    def sort_of(self, type_: Type) -> z3.SortRef:
        sort = self._sorts.get(type_)
        if sort is not None:
            return sort

        if type_.kind is TypeKind.INTEGER:
            sort = self.session.int_sort()
        elif type_.kind is TypeKind.REAL:
            sort = self.session.real_sort()
        elif type_.kind is TypeKind.BOOLEAN:
            sort = self.session.bool_sort()
        elif type_.kind is TypeKind.ENUMERATION:
            # Qualified constant names keep values of different
            # enumerations apart inside one context.
            qualified = [f"{type_.name}.{v}" for v in type_.values]
            sort, constants = self.session.declare_enum_sort(type_.name, qualified)
            self._enum_constants[type_] = dict(zip(type_.values, constants))
            self._enum_decoding[type_] = dict(zip(qualified, type_.values))
        else:
            raise InternalConsistencyError(
                f"No sort mapping for type kind {type_.kind!r}",
                context={"type": type_.name},
            )
        self._sorts[type_] = sort
        return sort

    def enum_constant(self, type_: Type, value_name: str) -> z3.ExprRef:
        self.sort_of(type_)
        try:
            return self._enum_constants[type_][value_name]
        except KeyError:
            raise InternalConsistencyError(
                f"'{value_name}' is not a constant of sort {type_.name}",
                context={"type": type_.name, "value": value_name},
            )

    def enum_value_name(self, type_: Type, decl_name: str) -> str:
        """Map a model's enumeration constant back to its value name."""
        try:
            return self._enum_decoding[type_][decl_name]
        except KeyError:
            raise InternalConsistencyError(
                f"Solver value '{decl_name}' is outside enumeration {type_.name} "
                f"{{{', '.join(type_.values)}}}",
                context={"type": type_.name, "raw": decl_name},
            )

    # ─── SYMBOLS ───────────────────────────────────────────────────

    def symbol(self, variable: Variable) -> z3.ExprRef:
        """The solver constant for ``variable``; declared on first use."""
        const = self._symbols.get(variable)
        if const is not None:
            return const
        if variable not in self.rule_set.variables:
            raise InternalConsistencyError(
                f"Variable '{variable.name}' reached the compiler but is not "
                f"declared in rule set '{self.rule_set.name}'",
                context={"variable": variable.name, "rule_set": self.rule_set.name},
            )
        const = self.session.declare_constant(
            f"{self.rule_set.name}.{variable.name}", self.sort_of(variable.type)
        )
        self._symbols[variable] = const
        return const

    def declare_all(self) -> None:
        """Declare every rule-set variable so models cover all of them."""
        for var in self.rule_set.variables:
            self.symbol(var)

    @property
    def symbols(self) -> Dict[Variable, z3.ExprRef]:
        """Declared symbols in rule-set declaration order."""
        return {v: self._symbols[v] for v in self.rule_set.variables if v in self._symbols}

    # ─── EXPRESSIONS ───────────────────────────────────────────────

    def literal(self, value: Value) -> z3.ExprRef:
        kind = value.type.kind
        if kind is TypeKind.INTEGER:
            return self.session.int_val(value.payload)
        if kind is TypeKind.REAL:
            return self.session.real_val(value.payload)
        if kind is TypeKind.BOOLEAN:
            return self.session.bool_val(value.payload)
        if kind is TypeKind.ENUMERATION:
            return self.enum_constant(value.type, value.payload)
        raise InternalConsistencyError(
            f"No literal mapping for type kind {kind!r}",
            context={"type": value.type.name},
        )

    def compile(self, expr: Expression) -> z3.ExprRef:
        """Structural recursion over the closed expression union."""
        if isinstance(expr, Literal):
            return self.literal(expr.value)
        if isinstance(expr, VariableRef):
            return self.symbol(expr.variable)
        if isinstance(expr, UnaryOp):
            if expr.op is UnaryOperator.NOT:
                return z3.Not(self.compile(expr.operand))
        elif isinstance(expr, BinaryOp):
            return self._compile_binary(expr)
        raise InternalConsistencyError(
            f"Cannot compile node {expr!r}",
            context={"node_type": type(expr).__name__},
        )

    def _compile_binary(self, expr: BinaryOp) -> z3.ExprRef:
        left = self.compile(expr.left)
        right = self.compile(expr.right)
        if not left.sort().eq(right.sort()):
            raise InternalConsistencyError(
                f"Sort mismatch compiling '{expr}': {left.sort()} vs {right.sort()}",
                context={"expression": str(expr)},
            )

        op = expr.op
        if op is BinaryOperator.AND:
            return z3.And(left, right)
        if op is BinaryOperator.OR:
            return z3.Or(left, right)
        if op is BinaryOperator.IMPLIES:
            return z3.Implies(left, right)
        if op is BinaryOperator.EQ:
            return left == right
        if op is BinaryOperator.NE:
            return left != right
        if op is BinaryOperator.LT:
            return left < right
        if op is BinaryOperator.LE:
            return left <= right
        if op is BinaryOperator.GT:
            return left > right
        if op is BinaryOperator.GE:
            return left >= right
        raise InternalConsistencyError(
            f"Unknown operator {op!r}", context={"expression": str(expr)}
        )
