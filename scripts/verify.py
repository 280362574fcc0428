#!/usr/bin/env python3
"""
scripts/verify.py
=================
Verify the rule sets of a declaration file from the command line.

Usage:
    python scripts/verify.py --module examples/smart_home.yaml
    python scripts/verify.py --module examples/smart_home.yaml --rule-set lights
                             --constraint "motion > 0.1 implies state != OFF"
                             --timeout-ms 5000 --workers 4

Exit codes: 0 all checks hold, 1 a check is violated, 2 undecided,
3 the declaration or constraint is invalid, 4 the solver backend failed.
"""
import argparse
import logging
import os
import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from rulecheck.version import __version__


EXIT_CODES = {"holds": 0, "violated": 1, "indeterminate": 2}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="rulecheck rule-set verifier")
    parser.add_argument("--module", required=True,
                        help="Path to a .yaml/.yml/.json declaration")
    parser.add_argument("--rule-set", action="append", default=None,
                        help="Rule set to verify (repeatable; default: all)")
    parser.add_argument("--constraint", action="append", default=[],
                        help="Constraint expression to check (repeatable)")
    parser.add_argument("--timeout-ms", type=int, default=None)
    parser.add_argument("--workers", type=int, default=1)
    parser.add_argument("--log-level", default="WARNING")
    parser.add_argument("--version", action="version", version=f"rulecheck {__version__}")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )

    from rulecheck.core.config import VerifierConfig
    from rulecheck.core.exceptions import ConstructionError, DeclarationError, RuleCheckError
    from rulecheck.declaration import DeclarationLoader, parse_expression
    from rulecheck.symbolic.engine import Verdict, VerificationEngine
    from rulecheck.symbolic.explanation import format_verification_report

    try:
        config = VerifierConfig(timeout_ms=args.timeout_ms, max_workers=args.workers)
        module = DeclarationLoader.load(args.module)
        names = args.rule_set or list(module.rule_sets)
        rule_sets = [module.rule_set(name) for name in names]
        checks = {
            rs.name: [parse_expression(text, module.registry, rs.variables)
                      for text in args.constraint]
            for rs in rule_sets
        }
    except (DeclarationError, ConstructionError, KeyError, OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 3

    engine = VerificationEngine(config)
    worst = Verdict.HOLDS
    for rule_set in rule_sets:
        try:
            report = engine.verify(rule_set, checks[rule_set.name])
        except RuleCheckError as exc:
            print(f"error: verifying '{rule_set.name}' failed: {exc}", file=sys.stderr)
            return 4
        print(format_verification_report(report))
        if report.verdict is Verdict.VIOLATED:
            worst = Verdict.VIOLATED
        elif report.verdict is Verdict.INDETERMINATE and worst is Verdict.HOLDS:
            worst = Verdict.INDETERMINATE
    return EXIT_CODES[worst.value]


if __name__ == "__main__":
    sys.exit(main())
