"""
examples/basic_verification.py
==============================
Minimal rulecheck example: build a rule set in code, then check it for
gaps, overlaps and a safety constraint.
"""
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from rulecheck import (
    Rule,
    TypeRegistry,
    Variable,
    VerificationEngine,
    enum_value,
    format_verification_report,
    int_value,
    make_equal,
    make_greater_equal,
    make_less,
    make_literal,
    make_rule_set,
    make_var,
    parse_expression,
)


def main():
    registry = TypeRegistry()
    state = registry.enumeration("STATE", ["ON", "OFF", "STANDBY"])
    temperature = Variable("temperature", registry.integer)
    heater = Variable("heater", state)

    def heater_is(value_name):
        return make_equal(registry, make_var(heater), make_literal(enum_value(state, value_name)))

    t = make_var(temperature)
    rules = make_rule_set("thermostat", [temperature, heater], [
        Rule("cold", make_less(registry, t, make_literal(int_value(registry, 18))), heater_is("ON")),
        Rule("mild", make_less(registry, t, make_literal(int_value(registry, 22))), heater_is("STANDBY")),
        Rule("hot", make_greater_equal(registry, t, make_literal(int_value(registry, 23))), heater_is("OFF")),
    ])

    never_on_when_hot = parse_expression(
        "temperature >= 22 implies heater != ON", registry, rules.variables
    )

    engine = VerificationEngine()
    report = engine.verify(rules, [never_on_when_hot])
    print(format_verification_report(report))

    assert not report.completeness.holds, "temperature = 22 is not covered"
    assert report.completeness.counterexample["temperature"].payload == 22
    assert [(o.first, o.second) for o in report.overlap.overlaps] == [("cold", "mild")]
    assert report.constraints[0].holds
    print("✓ Basic verification example passed.")


if __name__ == "__main__":
    main()
