"""
rulecheck/core/types.py
=======================
Foundation type system for rulecheck.
Every module imports from here. No circular dependencies.

Domains:
  - Integer, Real, Boolean   — primitive singletons owned by a TypeRegistry
  - Enumeration(name, values) — finite domain with ordered, distinct value names

Types are compared by identity: a registry hands out exactly one instance
per primitive and per declared enumeration, so expression type-checking
can use ``is``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from typing import Dict, Iterable, List, Tuple, Union

from rulecheck.core.exceptions import (
    ConstructionError,
    DuplicateTypeError,
    DuplicateValueError,
    EmptyEnumerationError,
    TypeMismatchError,
    UnknownEnumValueError,
)
from rulecheck.core.validators import assert_valid_identifier


# ─────────────────────────────────────────────
#  TYPES
# ─────────────────────────────────────────────

class TypeKind(Enum):
    INTEGER     = "Integer"
    REAL        = "Real"
    BOOLEAN     = "Boolean"
    ENUMERATION = "Enumeration"


@dataclass(frozen=True, eq=False)
class Type:
    """A value domain.

    Identity-compared (``eq=False``): two enumerations with the same
    name and values are still different types unless they come from
    the same registry call.
    """
    kind:   TypeKind
    name:   str
    values: Tuple[str, ...] = ()    # ENUMERATION only, declaration order

    @property
    def is_numeric(self) -> bool:
        return self.kind in (TypeKind.INTEGER, TypeKind.REAL)

    @property
    def is_boolean(self) -> bool:
        return self.kind is TypeKind.BOOLEAN

    @property
    def is_enumeration(self) -> bool:
        return self.kind is TypeKind.ENUMERATION

    def has_value(self, value_name: str) -> bool:
        return value_name in self.values

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        if self.is_enumeration:
            return f"Type({self.name}{{{', '.join(self.values)}}})"
        return f"Type({self.name})"


PRIMITIVE_NAMES = {
    "Integer": TypeKind.INTEGER,
    "Real":    TypeKind.REAL,
    "Boolean": TypeKind.BOOLEAN,
}


class TypeRegistry:
    """Caller-held owner of the primitive singletons and declared enumerations.

    One registry per Module; pass it to every construction helper that
    needs a primitive type. There is no process-wide default.

    Usage:
        registry = TypeRegistry()
        state = registry.enumeration("STATE", ["ON", "OFF", "STANDBY"])
        temperature = Variable("temperature", registry.integer)
    """

    def __init__(self) -> None:
        self.integer = Type(TypeKind.INTEGER, "Integer")
        self.real    = Type(TypeKind.REAL, "Real")
        self.boolean = Type(TypeKind.BOOLEAN, "Boolean")
        self._enumerations: Dict[str, Type] = {}

    def enumeration(self, name: str, values: Iterable[str]) -> Type:
        """Declare (or fetch) an enumeration type.

        Raises:
            InvalidNameError:     name or a value name is not an identifier.
            EmptyEnumerationError: no values given.
            DuplicateValueError:  two value names collide (case-sensitive).
            DuplicateTypeError:   name clashes with a primitive or with an
                                  enumeration declared with other values.
        """
        assert_valid_identifier(name, "enumeration name")
        values = tuple(values)
        if not values:
            raise EmptyEnumerationError(
                f"Enumeration '{name}' must declare at least one value.",
                context={"type": name},
            )
        seen = set()
        for value_name in values:
            assert_valid_identifier(value_name, f"value of enumeration '{name}'")
            if value_name in seen:
                raise DuplicateValueError(
                    f"Enumeration '{name}' declares value '{value_name}' twice.",
                    type_name=name,
                    value_name=value_name,
                )
            seen.add(value_name)

        if name in PRIMITIVE_NAMES:
            raise DuplicateTypeError(
                f"'{name}' is a primitive type name.", context={"type": name}
            )
        existing = self._enumerations.get(name)
        if existing is not None:
            if existing.values != values:
                raise DuplicateTypeError(
                    f"Enumeration '{name}' already declared with values "
                    f"{list(existing.values)}.",
                    context={"type": name},
                )
            return existing

        enum_type = Type(TypeKind.ENUMERATION, name, values)
        self._enumerations[name] = enum_type
        return enum_type

    def get(self, name: str) -> Type:
        """Look up a primitive or declared enumeration by name."""
        kind = PRIMITIVE_NAMES.get(name)
        if kind is TypeKind.INTEGER:
            return self.integer
        if kind is TypeKind.REAL:
            return self.real
        if kind is TypeKind.BOOLEAN:
            return self.boolean
        try:
            return self._enumerations[name]
        except KeyError:
            raise KeyError(
                f"Type '{name}' not declared. "
                f"Available: {sorted(PRIMITIVE_NAMES) + sorted(self._enumerations)}"
            )

    def owns(self, type_: Type) -> bool:
        """True if ``type_`` was handed out by this registry."""
        if type_ is self.integer or type_ is self.real or type_ is self.boolean:
            return True
        return self._enumerations.get(type_.name) is type_

    @property
    def enumerations(self) -> Dict[str, Type]:
        return dict(self._enumerations)

    def enumerations_with_value(self, value_name: str) -> List[Type]:
        return [t for t in self._enumerations.values() if t.has_value(value_name)]


# ─────────────────────────────────────────────
#  VALUES
# ─────────────────────────────────────────────

Payload = Union[int, Fraction, bool, str]


@dataclass(frozen=True)
class Value:
    """A typed literal.

    payload is ``int`` (Integer), ``Fraction`` (Real), ``bool`` (Boolean)
    or the value name (Enumeration). Use the ``*_value`` helpers below;
    they validate the payload against the type.
    """
    type:    Type
    payload: Payload

    def __str__(self) -> str:
        if self.type.kind is TypeKind.BOOLEAN:
            return "true" if self.payload else "false"
        if self.type.kind is TypeKind.REAL:
            return format_real(self.payload)
        return str(self.payload)


def to_fraction(raw: Union[int, float, str, Decimal, Fraction]) -> Fraction:
    """Convert a real literal to an exact Fraction.

    Floats go through their shortest decimal repr so ``0.1`` means 1/10,
    which is what a rule author writing ``0.1`` intends.
    """
    if isinstance(raw, bool):
        raise ConstructionError(
            f"Boolean {raw!r} is not a real literal.", context={"value": raw}
        )
    if isinstance(raw, Fraction):
        return raw
    if isinstance(raw, float):
        if not math.isfinite(raw):
            raise ConstructionError(
                f"Real literal must be finite, got {raw!r}.", context={"value": raw}
            )
        return Fraction(repr(raw))
    if isinstance(raw, (int, Decimal)):
        return Fraction(raw)
    if isinstance(raw, str):
        try:
            return Fraction(raw.strip())
        except ValueError:
            raise ConstructionError(
                f"'{raw}' is not a real literal.", context={"value": raw}
            )
    raise ConstructionError(
        f"Unsupported real literal {raw!r} ({type(raw).__name__}).",
        context={"value": repr(raw)},
    )


def format_real(value: Fraction) -> str:
    """Render a Fraction as a terminating decimal when possible, else n/d."""
    if value.denominator == 1:
        return f"{value.numerator}.0"
    den = value.denominator
    while den % 2 == 0:
        den //= 2
    while den % 5 == 0:
        den //= 5
    if den != 1:
        return f"{value.numerator}/{value.denominator}"
    text = format(Decimal(value.numerator) / Decimal(value.denominator), "f")
    return text


def int_value(registry: TypeRegistry, raw: int) -> Value:
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise TypeMismatchError(
            f"Integer literal expected, got {raw!r}.",
            expected=registry.integer,
            actual=None,
            expression=raw,
        )
    return Value(registry.integer, raw)


def real_value(registry: TypeRegistry, raw: Union[int, float, str, Decimal, Fraction]) -> Value:
    return Value(registry.real, to_fraction(raw))


def bool_value(registry: TypeRegistry, raw: bool) -> Value:
    if not isinstance(raw, bool):
        raise TypeMismatchError(
            f"Boolean literal expected, got {raw!r}.",
            expected=registry.boolean,
            actual=None,
            expression=raw,
        )
    return Value(registry.boolean, raw)


def enum_value(enum_type: Type, value_name: str) -> Value:
    """Build an enumeration literal.

    Raises:
        UnknownEnumValueError: ``value_name`` is not one of the type's values.
    """
    if not enum_type.is_enumeration:
        raise TypeMismatchError(
            f"'{enum_type}' is not an enumeration.",
            expected="Enumeration",
            actual=enum_type,
            expression=value_name,
        )
    if not enum_type.has_value(value_name):
        raise UnknownEnumValueError(
            f"'{value_name}' is not a value of {enum_type.name} "
            f"{{{', '.join(enum_type.values)}}}.",
            expected=enum_type,
            actual=None,
            expression=value_name,
        )
    return Value(enum_type, value_name)


# ─────────────────────────────────────────────
#  VARIABLES
# ─────────────────────────────────────────────

@dataclass(frozen=True)
class Variable:
    """A named, typed slot referenced by expressions. Owns no value."""
    name: str
    type: Type

    def __post_init__(self):
        assert_valid_identifier(self.name, "variable name")

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"Variable({self.name}: {self.type.name})"

