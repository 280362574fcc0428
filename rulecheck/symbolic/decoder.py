"""
rulecheck/symbolic/decoder.py
=============================
Model decoder — turns a Z3 model into a typed Counterexample.

Integers decode to ``int``, reals to exact ``Fraction``, booleans to
``bool``, enumeration constants back to their value names through the
compiler's recorded encoding. Anything else is an engine defect and
raises InternalConsistencyError with the raw value in its context.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from fractions import Fraction
from typing import Dict, Iterator, Optional

import z3

from rulecheck.core.exceptions import InternalConsistencyError
from rulecheck.core.types import TypeKind, Value, Variable
from rulecheck.symbolic.compiler import FormulaCompiler

logger = logging.getLogger(__name__)


class Counterexample(Mapping[str, Value]):
    """Immutable assignment variable name → Value, in declaration order."""

    def __init__(self, values: Mapping[str, Value]):
        self._values: Dict[str, Value] = dict(values)

    def __getitem__(self, name: str) -> Value:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def payloads(self) -> Dict[str, object]:
        """Plain ``name → int | Fraction | bool | str`` view."""
        return {name: value.payload for name, value in self._values.items()}

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={v}" for k, v in self._values.items())
        return f"Counterexample({inner})"


def decode_value(model: z3.ModelRef, variable: Variable, compiler: FormulaCompiler) -> Value:
    """Decode one variable's model value."""
    raw = model.eval(compiler.symbol(variable), model_completion=True)
    kind = variable.type.kind

    if kind is TypeKind.INTEGER and z3.is_int_value(raw):
        return Value(variable.type, raw.as_long())
    if kind is TypeKind.REAL and z3.is_rational_value(raw):
        return Value(
            variable.type,
            Fraction(raw.numerator_as_long(), raw.denominator_as_long()),
        )
    if kind is TypeKind.BOOLEAN and (z3.is_true(raw) or z3.is_false(raw)):
        return Value(variable.type, z3.is_true(raw))
    if kind is TypeKind.ENUMERATION and z3.is_const(raw):
        return Value(variable.type, compiler.enum_value_name(variable.type, raw.decl().name()))

    raise InternalConsistencyError(
        f"Cannot decode model value {raw} for variable '{variable.name}' "
        f"of type {variable.type.name}",
        context={"variable": variable.name, "type": variable.type.name, "raw": str(raw)},
    )


def decode_model(
    model: z3.ModelRef,
    compiler: FormulaCompiler,
    variables: Optional[list] = None,
) -> Counterexample:
    """Decode a model into a Counterexample.

    Args:
        model:     Z3 model from a SAT session.
        compiler:  The compilation environment that produced the query.
        variables: Variables to decode; defaults to every variable of the
                   rule set (unconstrained ones get Z3's completion value).
    """
    targets = variables if variables is not None else compiler.rule_set.variables
    values = {var.name: decode_value(model, var, compiler) for var in targets}
    counterexample = Counterexample(values)
    logger.debug("Decoded model: %r", counterexample)
    return counterexample
