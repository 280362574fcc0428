"""
rulecheck/symbolic/solver.py
============================
Solver capability — wraps the Z3 SMT solver behind a small session API.

A SolverSession is scoped to exactly one verification query:
    declare sorts/constants → add assertions → check() → model()

Each session owns a private ``z3.Context``. Sessions therefore share no
solver state and independent queries can run on different threads.

Theories used: QF_LIA / QF_LRA (linear integer and real arithmetic),
equality over finite (enumeration) sorts, and boolean connectives.

    Reference: De Moura & Bjørner (2008) "Z3: An Efficient SMT Solver".
"""
from __future__ import annotations

import logging
from enum import Enum
from fractions import Fraction
from typing import List, Optional, Sequence, Tuple

import z3

from rulecheck.core.config import DEFAULT_CONFIG, VerifierConfig
from rulecheck.core.exceptions import InternalConsistencyError, SolverBackendError

logger = logging.getLogger(__name__)


class SolverOutcome(Enum):
    SAT     = "sat"
    UNSAT   = "unsat"
    UNKNOWN = "unknown"


class SolverSession:
    """One solver session: private context, private assertions.

    Usage:
        session = SolverSession(config, label="completeness:lights")
        x = session.declare_constant("x", session.int_sort())
        session.add(x > 3)
        if session.check() is SolverOutcome.SAT:
            model = session.model()
    """

    def __init__(self, config: VerifierConfig = DEFAULT_CONFIG, label: str = ""):
        self.label = label
        self._outcome: Optional[SolverOutcome] = None
        self._assertion_count = 0
        try:
            self.ctx = z3.Context()
            if config.solver_logic:
                self._solver = z3.SolverFor(config.solver_logic, ctx=self.ctx)
            else:
                self._solver = z3.Solver(ctx=self.ctx)
            if config.timeout_ms is not None:
                self._solver.set("timeout", config.timeout_ms)
            if config.random_seed:
                self._solver.set("random_seed", config.random_seed)
        except z3.Z3Exception as exc:
            raise SolverBackendError(
                f"Could not open solver session '{label}': {exc}",
                context={"label": label, "logic": config.solver_logic},
            ) from exc

    # ─── SORTS & SYMBOLS ───────────────────────────────────────────

    def int_sort(self) -> z3.SortRef:
        return z3.IntSort(self.ctx)

    def real_sort(self) -> z3.SortRef:
        return z3.RealSort(self.ctx)

    def bool_sort(self) -> z3.SortRef:
        return z3.BoolSort(self.ctx)

    def declare_enum_sort(
        self, name: str, values: Sequence[str]
    ) -> Tuple[z3.SortRef, List[z3.ExprRef]]:
        """Declare a finite sort with one distinct constant per value name."""
        try:
            sort, constants = z3.EnumSort(name, list(values), ctx=self.ctx)
        except z3.Z3Exception as exc:
            raise SolverBackendError(
                f"[{self.label}] could not declare sort '{name}': {exc}",
                context={"label": self.label, "sort": name},
            ) from exc
        logger.debug("[%s] declared sort %s %s", self.label, name, list(values))
        return sort, list(constants)

    def declare_constant(self, name: str, sort: z3.SortRef) -> z3.ExprRef:
        return z3.Const(name, sort)

    # ─── NUMERALS ──────────────────────────────────────────────────

    def int_val(self, value: int) -> z3.ArithRef:
        return z3.IntVal(value, self.ctx)

    def real_val(self, value: Fraction) -> z3.ArithRef:
        """Exact rational numeral."""
        magnitude = z3.RealVal(f"{abs(value.numerator)}/{value.denominator}", self.ctx)
        return -magnitude if value < 0 else magnitude

    def bool_val(self, value: bool) -> z3.BoolRef:
        return z3.BoolVal(value, self.ctx)

    # ─── ASSERT / CHECK ────────────────────────────────────────────

    def add(self, formula: z3.BoolRef) -> None:
        """Assert a formula in this session."""
        if self._outcome is not None:
            raise InternalConsistencyError(
                f"Session '{self.label}' already checked; open a new session.",
                context={"label": self.label},
            )
        self._solver.add(formula)
        self._assertion_count += 1
        logger.debug("[%s] assert %s", self.label, formula)

    def check(self) -> SolverOutcome:
        """Decide satisfiability of the asserted formulas."""
        try:
            result = self._solver.check()
        except z3.Z3Exception as exc:
            raise SolverBackendError(
                f"Solver failed in session '{self.label}': {exc}",
                context={"label": self.label, "assertions": self._assertion_count},
            ) from exc

        if result == z3.sat:
            self._outcome = SolverOutcome.SAT
        elif result == z3.unsat:
            self._outcome = SolverOutcome.UNSAT
        else:
            # z3.unknown: timeout or resource limit
            self._outcome = SolverOutcome.UNKNOWN
            logger.warning(
                "Z3 returned UNKNOWN in session '%s' (%s).",
                self.label, self.reason_unknown(),
            )
        logger.debug("[%s] %s", self.label, self._outcome.value)
        return self._outcome

    def model(self) -> z3.ModelRef:
        """Satisfying assignment; valid only after check() returned SAT."""
        if self._outcome is not SolverOutcome.SAT:
            raise InternalConsistencyError(
                f"Model requested from session '{self.label}' whose outcome is "
                f"{self._outcome.value if self._outcome else 'unchecked'}.",
                context={"label": self.label},
            )
        return self._solver.model()

    def reason_unknown(self) -> str:
        try:
            return self._solver.reason_unknown()
        except z3.Z3Exception:
            return "unknown"

    @property
    def outcome(self) -> Optional[SolverOutcome]:
        return self._outcome

    @property
    def assertion_count(self) -> int:
        return self._assertion_count
