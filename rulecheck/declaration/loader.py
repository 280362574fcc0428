"""
rulecheck/declaration/loader.py
===============================
Load module declarations from YAML, JSON or plain dicts.

Declaration format (YAML shown; JSON is the same structure)::

    name: home
    types:
      STATE: [ON, OFF, STANDBY]
    ruleSets:
      lights:
        variables:
          temperature: Integer
          motion: Real
          state: STATE
          stateOut: STATE
        rules:
          - name: too_warm
            when: temperature > 23 and motion < 0.3
            then: stateOut = OFF
            description: optional free text

``variables`` may also be a list of ``{name: ..., type: ...}`` entries.
``when`` / ``then`` are parsed by rulecheck.declaration.parser.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from rulecheck.core.exceptions import DeclarationError, ExpressionSyntaxError
from rulecheck.core.expressions import render
from rulecheck.core.rules import Module, Rule, RuleSet
from rulecheck.core.types import TypeRegistry, Variable
from rulecheck.declaration.parser import ExpressionParser

logger = logging.getLogger(__name__)


class _DeclarationYamlLoader(yaml.SafeLoader):
    """SafeLoader reading only true/false as booleans.

    Plain YAML 1.1 turns ON / OFF / yes / no into booleans, which would
    silently corrupt enumeration values such as ``[ON, OFF]``.
    """


_DeclarationYamlLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != "tag:yaml.org,2002:bool"]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
_DeclarationYamlLoader.add_implicit_resolver(
    "tag:yaml.org,2002:bool",
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)


class DeclarationLoader:
    """Compile declarations into validated Modules.

    Every construction error of the core model (duplicate values,
    type mismatches, undeclared variables, ...) propagates unchanged;
    structural problems of the document raise DeclarationError.
    """

    SUFFIXES = {".yaml": "yaml", ".yml": "yaml", ".json": "json"}

    @classmethod
    def load(cls, path: Union[str, Path]) -> Module:
        """Load a declaration file. Auto-detects format from the extension."""
        p = Path(path)
        fmt = cls.SUFFIXES.get(p.suffix.lower())
        if fmt is None:
            raise DeclarationError(
                f"Unsupported declaration format: {p.suffix or '(none)'}",
                context={"path": str(p), "supported": sorted(cls.SUFFIXES)},
            )
        if fmt == "yaml":
            return cls.from_yaml(p)
        return cls.from_json(p)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> Module:
        return cls.from_yaml_string(Path(path).read_text(encoding="utf-8"))

    @classmethod
    def from_yaml_string(cls, text: str) -> Module:
        try:
            data = yaml.load(text, Loader=_DeclarationYamlLoader)
        except yaml.YAMLError as exc:
            raise DeclarationError(f"Invalid YAML declaration: {exc}") from exc
        return cls.from_dict(data)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> Module:
        return cls.from_json_string(Path(path).read_text(encoding="utf-8"))

    @classmethod
    def from_json_string(cls, text: str) -> Module:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise DeclarationError(f"Invalid JSON declaration: {exc}") from exc
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Any) -> Module:
        if not isinstance(data, dict):
            raise DeclarationError("Declaration must be a mapping at top level.")
        name = _require(data, "name", "module")

        registry = TypeRegistry()
        types = {}
        for type_name, values in _mapping(data.get("types", {}), "types").items():
            if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
                raise DeclarationError(
                    f"Type '{type_name}' must list its values as strings.",
                    context={"type": type_name},
                )
            types[type_name] = registry.enumeration(type_name, values)

        raw_rule_sets = data.get("ruleSets", data.get("rule_sets", {}))
        rule_sets = {}
        for rs_name, rs_data in _mapping(raw_rule_sets, "ruleSets").items():
            rule_sets[rs_name] = cls._rule_set(registry, rs_name, rs_data)

        module = Module(name=name, registry=registry, types=types, rule_sets=rule_sets)
        logger.info(
            "Loaded module '%s': %d type(s), %d rule set(s).",
            module.name, len(types), len(rule_sets),
        )
        return module

    @classmethod
    def _rule_set(cls, registry: TypeRegistry, name: str, data: Any) -> RuleSet:
        data = _mapping(data, f"ruleSets.{name}")
        variables = cls._variables(registry, name, data.get("variables", {}))
        parser = ExpressionParser(registry, variables)

        rules: List[Rule] = []
        raw_rules = data.get("rules", []) or []
        if not isinstance(raw_rules, list):
            raise DeclarationError(
                f"ruleSets.{name}.rules must be a list.", context={"rule_set": name}
            )
        for index, item in enumerate(raw_rules):
            item = _mapping(item, f"ruleSets.{name}.rules[{index}]")
            rule_name = _require(item, "name", f"rule #{index} of '{name}'")
            rules.append(
                Rule(
                    name=rule_name,
                    precondition=_parse_field(parser, item, "when", name, rule_name),
                    postcondition=_parse_field(parser, item, "then", name, rule_name),
                    description=str(item.get("description", "")),
                )
            )
        return RuleSet(name=name, variables=tuple(variables), rules=tuple(rules))

    @staticmethod
    def _variables(registry: TypeRegistry, rs_name: str, raw: Any) -> List[Variable]:
        if isinstance(raw, dict):
            entries = list(raw.items())
        elif isinstance(raw, list):
            entries = []
            for item in raw:
                item = _mapping(item, f"ruleSets.{rs_name}.variables")
                entries.append(
                    (_require(item, "name", "variable"), _require(item, "type", "variable"))
                )
        else:
            raise DeclarationError(
                f"ruleSets.{rs_name}.variables must be a mapping or a list.",
                context={"rule_set": rs_name},
            )

        variables = []
        for var_name, type_name in entries:
            try:
                type_ = registry.get(str(type_name))
            except KeyError:
                raise DeclarationError(
                    f"Variable '{rs_name}.{var_name}' has undeclared type '{type_name}'.",
                    context={"rule_set": rs_name, "variable": var_name, "type": type_name},
                )
            variables.append(Variable(str(var_name), type_))
        return variables

    # ─── SERIALIZATION ─────────────────────────────────────────────

    @classmethod
    def to_dict(cls, module: Module) -> Dict[str, Any]:
        return {
            "name": module.name,
            "types": {name: list(t.values) for name, t in module.types.items()},
            "ruleSets": {
                rs.name: {
                    "variables": {v.name: v.type.name for v in rs.variables},
                    "rules": [
                        _rule_to_dict(rule) for rule in rs.rules
                    ],
                }
                for rs in module.rule_sets.values()
            },
        }

    @classmethod
    def to_json(cls, module: Module, path: Union[str, Path]) -> None:
        Path(path).write_text(json.dumps(cls.to_dict(module), indent=2), encoding="utf-8")

    @classmethod
    def to_yaml(cls, module: Module, path: Union[str, Path]) -> None:
        Path(path).write_text(
            yaml.safe_dump(cls.to_dict(module), default_flow_style=False, sort_keys=False),
            encoding="utf-8",
        )


def _rule_to_dict(rule: Rule) -> Dict[str, str]:
    item = {
        "name": rule.name,
        "when": render(rule.precondition),
        "then": render(rule.postcondition),
    }
    if rule.description:
        item["description"] = rule.description
    return item


def _mapping(value: Any, where: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise DeclarationError(f"'{where}' must be a mapping.", context={"where": where})
    return value


def _require(data: Dict[str, Any], key: str, where: str) -> str:
    value = data.get(key)
    if value is None or value == "":
        raise DeclarationError(
            f"Missing '{key}' in {where}.", context={"where": where, "key": key}
        )
    return str(value)


def _parse_field(parser: ExpressionParser, item: Dict[str, Any], key: str, rs_name: str, rule_name: str):
    raw = item.get(key)
    if raw is None:
        raise DeclarationError(
            f"Rule '{rs_name}.{rule_name}' has no '{key}' expression.",
            context={"rule_set": rs_name, "rule": rule_name, "field": key},
        )
    if isinstance(raw, bool):
        raw = "true" if raw else "false"
    try:
        return parser.parse(str(raw))
    except ExpressionSyntaxError as exc:
        exc.context.update({"rule_set": rs_name, "rule": rule_name, "field": key})
        raise
