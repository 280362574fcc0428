"""
rulecheck/core/validators.py
============================
Input validation utilities for rulecheck.

These validators run at construction boundaries (types, variables,
rules, rule sets, modules), never inside solver queries.

``validate_*`` functions return a list of error strings (empty = valid);
``assert_*`` functions raise the matching RuleCheckError subclass.
"""
from __future__ import annotations

import re
from typing import Iterable, List

from rulecheck.core.exceptions import InvalidNameError


# ─── REGEX PATTERNS ───────────────────────────────────────────────

VALID_NAME_RE = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')

# Words the expression parser reserves; they cannot name variables or values.
RESERVED_WORDS = frozenset({"and", "or", "not", "implies", "true", "false"})


# ─── NAME VALIDATION ──────────────────────────────────────────────

def validate_identifier(name: str, kind: str = "name") -> List[str]:
    """Validate a single identifier. Returns list of error strings.

    Checks:
        1. Name is a non-empty string
        2. Name matches ``[A-Za-z_][A-Za-z0-9_]*``
        3. Name is not a reserved expression keyword
    """
    errors: List[str] = []
    if not isinstance(name, str) or not name:
        errors.append(f"{kind} is empty")
        return errors
    if not VALID_NAME_RE.match(name):
        errors.append(
            f"{kind} '{name}' invalid: must be [A-Za-z_][A-Za-z0-9_]*"
        )
    elif name.lower() in RESERVED_WORDS:
        errors.append(f"{kind} '{name}' is a reserved word")
    return errors


def find_duplicates(names: Iterable[str]) -> List[str]:
    """Return every name that occurs more than once, in first-repeat order."""
    seen = set()
    duplicates: List[str] = []
    for name in names:
        if name in seen and name not in duplicates:
            duplicates.append(name)
        seen.add(name)
    return duplicates


# ─── CONVENIENCE VALIDATORS ──────────────────────────────────────

def assert_valid_identifier(name: str, kind: str = "name") -> None:
    """Validate an identifier and raise InvalidNameError on any violation."""
    errors = validate_identifier(name, kind)
    if errors:
        raise InvalidNameError(
            f"Invalid {kind}: {'; '.join(errors)}",
            context={"kind": kind, "name": name},
        )
