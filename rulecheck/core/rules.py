"""
rulecheck/core/rules.py
=======================
Rule model: guarded rules, rule sets and modules.

A Rule is ``when <precondition> then <postcondition>``. A RuleSet groups
the variables its rules talk about (inputs and outputs by convention
only) with an ordered sequence of rules. A Module is the top-level
container produced by constructor calls or by the declaration loader.

Validation happens in ``__post_init__``; an invalid rule set never
exists. Order of variables and rules is preserved for reporting but
carries no logical meaning.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Sequence, Tuple

from rulecheck.core.exceptions import (
    ConstructionError,
    DuplicateRuleNameError,
    DuplicateTypeError,
    DuplicateVariableError,
    TypeMismatchError,
    UndeclaredVariableError,
)
from rulecheck.core.expressions import Expression, free_variables_of
from rulecheck.core.types import Type, TypeRegistry, Variable
from rulecheck.core.validators import assert_valid_identifier, find_duplicates

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rule:
    """A guarded rule.

    precondition  — Boolean expression guarding when the rule applies.
    postcondition — Boolean expression describing its effect, usually
                    equalities assigning output variables.

    Both must be Boolean; this is checked against the owning rule set's
    registry when the rule set is built.
    """
    name:          str
    precondition:  Expression
    postcondition: Expression
    description:   str = ""

    def __post_init__(self):
        assert_valid_identifier(self.name, "rule name")

    def __str__(self) -> str:
        return f"{self.name}: when {self.precondition} then {self.postcondition}"


@dataclass(frozen=True)
class RuleSet:
    """Variables plus an ordered sequence of rules over them.

    Raises at construction:
        InvalidNameError        — malformed rule-set name
        DuplicateVariableError  — two variables share a name
        DuplicateRuleNameError  — two rules share a name
        TypeMismatchError       — a pre/postcondition is not Boolean
        UndeclaredVariableError — a rule references a foreign variable
        DuplicateTypeError      — two distinct enumerations share a name
    """
    name:      str
    variables: Tuple[Variable, ...]
    rules:     Tuple[Rule, ...] = ()

    def __post_init__(self):
        # Accept any iterable; store tuples so the rule set stays immutable.
        object.__setattr__(self, "variables", tuple(self.variables))
        object.__setattr__(self, "rules", tuple(self.rules))
        assert_valid_identifier(self.name, "rule set name")

        duplicates = find_duplicates(v.name for v in self.variables)
        if duplicates:
            raise DuplicateVariableError(
                f"Rule set '{self.name}' declares variable '{duplicates[0]}' twice.",
                context={"rule_set": self.name, "variables": duplicates},
            )

        duplicates = find_duplicates(r.name for r in self.rules)
        if duplicates:
            raise DuplicateRuleNameError(
                f"Rule set '{self.name}' declares rule '{duplicates[0]}' twice.",
                rule_name=duplicates[0],
                rule_set=self.name,
            )

        # One solver sort per enumeration name; two distinct enumerations
        # (e.g. from separate registries) cannot share it.
        duplicates = find_duplicates(t.name for t in self.types if t.is_enumeration)
        if duplicates:
            raise DuplicateTypeError(
                f"Rule set '{self.name}' mixes distinct enumerations named "
                f"'{duplicates[0]}'.",
                context={"rule_set": self.name, "types": duplicates},
            )

        declared = set(self.variables)
        for rule in self.rules:
            for label, expr in (
                ("precondition", rule.precondition),
                ("postcondition", rule.postcondition),
            ):
                if not expr.type.is_boolean:
                    raise TypeMismatchError(
                        f"Rule '{rule.name}' {label} must be Boolean, "
                        f"got {expr.type.name}: '{expr}'.",
                        expected="Boolean",
                        actual=expr.type,
                        expression=expr,
                    )
            self._check_closure((rule.precondition, rule.postcondition), declared, rule.name)

        logger.debug(
            "Rule set built: %s (%d variables, %d rules)",
            self.name, len(self.variables), len(self.rules),
        )

    def _check_closure(
        self, exprs: Sequence[Expression], declared: set, rule_name: Optional[str]
    ) -> None:
        for var in free_variables_of(exprs):
            if var not in declared:
                where = f"rule '{rule_name}'" if rule_name else "expression"
                raise UndeclaredVariableError(
                    f"{where} references variable '{var.name}' "
                    f"({var.type.name}) not declared in rule set '{self.name}'.",
                    variable_name=var.name,
                    rule_set=self.name,
                    rule=rule_name,
                )

    def check_expression(self, expr: Expression) -> None:
        """Validate a caller-supplied constraint against this rule set.

        Raises TypeMismatchError if not Boolean, UndeclaredVariableError
        if it references a variable outside the rule set.
        """
        if not expr.type.is_boolean:
            raise TypeMismatchError(
                f"Constraint must be Boolean, got {expr.type.name}: '{expr}'.",
                expected="Boolean",
                actual=expr.type,
                expression=expr,
            )
        self._check_closure((expr,), set(self.variables), None)

    # ─── LOOKUP ────────────────────────────────────────────────────

    def variable(self, name: str) -> Variable:
        for var in self.variables:
            if var.name == name:
                return var
        raise KeyError(
            f"Variable '{name}' not in rule set '{self.name}'. "
            f"Available: {[v.name for v in self.variables]}"
        )

    def rule(self, name: str) -> Rule:
        for rule in self.rules:
            if rule.name == name:
                return rule
        raise KeyError(
            f"Rule '{name}' not in rule set '{self.name}'. "
            f"Available: {[r.name for r in self.rules]}"
        )

    @property
    def rule_names(self) -> Tuple[str, ...]:
        return tuple(r.name for r in self.rules)

    @property
    def types(self) -> Tuple[Type, ...]:
        """Distinct variable types, in first-use order."""
        seen = []
        for var in self.variables:
            if not any(var.type is t for t in seen):
                seen.append(var.type)
        return tuple(seen)


def make_rule_set(
    name: str,
    variables: Iterable[Variable],
    rules: Iterable[Rule] = (),
) -> RuleSet:
    return RuleSet(name=name, variables=tuple(variables), rules=tuple(rules))


@dataclass(frozen=True)
class Module:
    """Top-level immutable container: named types and rule sets.

    ``registry`` is the TypeRegistry every type of the module came from;
    rule sets whose variables use types of another registry are rejected.
    """
    name:      str
    registry:  TypeRegistry = field(repr=False, compare=False)
    types:     Mapping[str, Type] = field(default_factory=dict)
    rule_sets: Mapping[str, RuleSet] = field(default_factory=dict)

    def __post_init__(self):
        assert_valid_identifier(self.name, "module name")
        object.__setattr__(self, "types", MappingProxyType(dict(self.types)))
        object.__setattr__(self, "rule_sets", MappingProxyType(dict(self.rule_sets)))

        for type_name, type_ in self.types.items():
            if type_name != type_.name or not self.registry.owns(type_):
                raise ConstructionError(
                    f"Module '{self.name}': type '{type_name}' does not belong "
                    "to the module registry.",
                    context={"module": self.name, "type": type_name},
                )
        for rs_name, rule_set in self.rule_sets.items():
            if rs_name != rule_set.name:
                raise ConstructionError(
                    f"Module '{self.name}': rule set registered as '{rs_name}' "
                    f"is named '{rule_set.name}'.",
                    context={"module": self.name, "rule_set": rs_name},
                )
            for var in rule_set.variables:
                if not self.registry.owns(var.type):
                    raise ConstructionError(
                        f"Module '{self.name}': variable '{rule_set.name}.{var.name}' "
                        f"uses type '{var.type.name}' from another registry.",
                        context={"module": self.name, "variable": var.name},
                    )

    def rule_set(self, name: str) -> RuleSet:
        try:
            return self.rule_sets[name]
        except KeyError:
            raise KeyError(
                f"Rule set '{name}' not in module '{self.name}'. "
                f"Available: {list(self.rule_sets)}"
            )
