"""
tests/unit/test_types.py
========================
Tests for rulecheck/core/types.py and rulecheck/core/validators.py.

Tests cover:
    - TypeRegistry: primitives, enumeration declaration, lookup, ownership
    - Enumeration errors: empty, duplicate value, duplicate type, bad names
    - Value helpers: int/real/bool/enum literals and their validation
    - Exact real conversion and formatting
    - Variable name validation
"""

from decimal import Decimal
from fractions import Fraction

import pytest

from rulecheck.core.exceptions import (
    ConstructionError,
    DuplicateTypeError,
    DuplicateValueError,
    EmptyEnumerationError,
    InvalidNameError,
    TypeMismatchError,
    UnknownEnumValueError,
)
from rulecheck.core.types import (
    TypeKind,
    TypeRegistry,
    Value,
    Variable,
    bool_value,
    enum_value,
    format_real,
    int_value,
    real_value,
    to_fraction,
)
from rulecheck.core.validators import find_duplicates, validate_identifier


# ═══════════════════════════════════════════════════════════════════
#  TypeRegistry
# ═══════════════════════════════════════════════════════════════════


class TestTypeRegistry:

    def test_primitives_are_singletons_per_registry(self, registry):
        assert registry.get("Integer") is registry.integer
        assert registry.get("Real") is registry.real
        assert registry.get("Boolean") is registry.boolean

    def test_primitive_kinds(self, registry):
        assert registry.integer.kind is TypeKind.INTEGER
        assert registry.real.is_numeric
        assert registry.boolean.is_boolean
        assert not registry.boolean.is_numeric

    def test_registries_do_not_share_types(self, registry):
        other = TypeRegistry()
        assert other.integer is not registry.integer
        assert not registry.owns(other.integer)

    def test_enumeration_keeps_declaration_order(self, state_type):
        assert state_type.values == ("ON", "OFF", "STANDBY")
        assert state_type.is_enumeration
        assert state_type.has_value("OFF")
        assert not state_type.has_value("off")

    def test_redeclaring_same_enumeration_returns_same_instance(self, registry, state_type):
        again = registry.enumeration("STATE", ["ON", "OFF", "STANDBY"])
        assert again is state_type

    def test_redeclaring_with_other_values_fails(self, registry, state_type):
        with pytest.raises(DuplicateTypeError):
            registry.enumeration("STATE", ["ON", "OFF"])

    def test_enumeration_cannot_shadow_primitive(self, registry):
        with pytest.raises(DuplicateTypeError):
            registry.enumeration("Integer", ["A"])

    def test_empty_enumeration_fails(self, registry):
        with pytest.raises(EmptyEnumerationError):
            registry.enumeration("EMPTY", [])

    def test_duplicate_value_fails(self, registry):
        with pytest.raises(DuplicateValueError) as info:
            registry.enumeration("MODE", ["A", "B", "A"])
        assert info.value.type_name == "MODE"
        assert info.value.value_name == "A"

    def test_values_are_case_sensitive(self, registry):
        mode = registry.enumeration("MODE", ["on", "ON"])
        assert mode.values == ("on", "ON")

    def test_invalid_value_name_fails(self, registry):
        with pytest.raises(InvalidNameError):
            registry.enumeration("MODE", ["A", "not valid"])

    def test_invalid_type_name_fails(self, registry):
        with pytest.raises(InvalidNameError):
            registry.enumeration("1MODE", ["A"])

    def test_get_unknown_type_raises_key_error(self, registry):
        with pytest.raises(KeyError, match="not declared"):
            registry.get("COLOR")

    def test_owns_declared_enumeration(self, registry, state_type):
        assert registry.owns(state_type)
        assert not TypeRegistry().owns(state_type)

    def test_enumerations_with_value(self, registry, state_type):
        power = registry.enumeration("POWER", ["ON", "LOW"])
        assert registry.enumerations_with_value("ON") == [state_type, power]
        assert registry.enumerations_with_value("LOW") == [power]
        assert registry.enumerations_with_value("NOPE") == []

    def test_enumerations_is_a_copy(self, registry, state_type):
        snapshot = registry.enumerations
        snapshot.clear()
        assert registry.enumerations == {"STATE": state_type}


# ═══════════════════════════════════════════════════════════════════
#  Values
# ═══════════════════════════════════════════════════════════════════


class TestValues:

    def test_int_value(self, registry):
        assert int_value(registry, 23) == Value(registry.integer, 23)

    def test_int_value_rejects_bool_and_float(self, registry):
        with pytest.raises(TypeMismatchError):
            int_value(registry, True)
        with pytest.raises(TypeMismatchError):
            int_value(registry, 1.5)

    def test_real_value_is_exact(self, registry):
        assert real_value(registry, 0.1).payload == Fraction(1, 10)
        assert real_value(registry, "0.3").payload == Fraction(3, 10)
        assert real_value(registry, Decimal("2.5")).payload == Fraction(5, 2)
        assert real_value(registry, 3).payload == Fraction(3)

    def test_real_value_rejects_non_finite(self, registry):
        with pytest.raises(ConstructionError):
            real_value(registry, float("inf"))

    def test_real_value_rejects_garbage(self, registry):
        with pytest.raises(ConstructionError):
            real_value(registry, "zero point one")
        with pytest.raises(ConstructionError):
            real_value(registry, True)

    def test_bool_value(self, registry):
        assert bool_value(registry, False).payload is False
        with pytest.raises(TypeMismatchError):
            bool_value(registry, 0)

    def test_enum_value(self, state_type):
        value = enum_value(state_type, "STANDBY")
        assert value.type is state_type
        assert value.payload == "STANDBY"

    def test_unknown_enum_value(self, state_type):
        with pytest.raises(UnknownEnumValueError):
            enum_value(state_type, "BROKEN")

    def test_unknown_enum_value_is_a_type_mismatch(self, state_type):
        with pytest.raises(TypeMismatchError):
            enum_value(state_type, "on")

    def test_enum_value_of_primitive_fails(self, registry):
        with pytest.raises(TypeMismatchError):
            enum_value(registry.integer, "ON")

    def test_value_str(self, registry, state_type):
        assert str(bool_value(registry, True)) == "true"
        assert str(real_value(registry, "0.1")) == "0.1"
        assert str(int_value(registry, -4)) == "-4"
        assert str(enum_value(state_type, "ON")) == "ON"


class TestRealConversion:

    @pytest.mark.parametrize("raw, expected", [
        (0.1, Fraction(1, 10)),
        (-2.25, Fraction(-9, 4)),
        ("1/3", Fraction(1, 3)),
        (Fraction(7, 2), Fraction(7, 2)),
    ])
    def test_to_fraction(self, raw, expected):
        assert to_fraction(raw) == expected

    @pytest.mark.parametrize("value, text", [
        (Fraction(3), "3.0"),
        (Fraction(1, 10), "0.1"),
        (Fraction(-9, 4), "-2.25"),
        (Fraction(1, 3), "1/3"),
    ])
    def test_format_real(self, value, text):
        assert format_real(value) == text


# ═══════════════════════════════════════════════════════════════════
#  Variables & names
# ═══════════════════════════════════════════════════════════════════


class TestVariable:

    def test_variable_has_name_and_type(self, registry):
        var = Variable("temperature", registry.integer)
        assert str(var) == "temperature"
        assert repr(var) == "Variable(temperature: Integer)"

    def test_equal_name_and_type_are_equal(self, registry):
        assert Variable("x", registry.real) == Variable("x", registry.real)
        assert Variable("x", registry.real) != Variable("x", registry.integer)

    @pytest.mark.parametrize("name", ["", "1x", "has space", "and", "True"])
    def test_invalid_names(self, registry, name):
        with pytest.raises(InvalidNameError):
            Variable(name, registry.integer)


def test_validate_identifier_reports_errors():
    assert validate_identifier("stateOut") == []
    assert validate_identifier("implies", "variable name") == [
        "variable name 'implies' is a reserved word"
    ]
    assert len(validate_identifier("a-b")) == 1


def test_find_duplicates_in_first_repeat_order():
    assert find_duplicates(["a", "b", "a", "c", "b", "a"]) == ["a", "b"]
    assert find_duplicates([]) == []
