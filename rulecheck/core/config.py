"""
rulecheck/core/config.py
========================
Verifier configuration. All knobs in one place — validated on construction.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class VerifierConfig:
    timeout_ms:   Optional[int] = None   # per solver query; None = no limit
    max_workers:  int           = 1      # >1 dispatches independent queries to threads
    solver_logic: Optional[str] = None   # e.g. "QF_LIRA"; None lets Z3 pick
    random_seed:  int           = 0

    def __post_init__(self):
        if self.timeout_ms is not None and self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {self.timeout_ms}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.random_seed < 0:
            raise ValueError(f"random_seed must be >= 0, got {self.random_seed}")

    @classmethod
    def for_profile(cls, profile: str) -> "VerifierConfig":
        """Pre-tuned configs.

        fast      — short timeout, parallel pair checks (interactive use)
        thorough  — no timeout, sequential (CI gates)
        """
        if profile == "fast":
            return cls(timeout_ms=2_000, max_workers=4)
        if profile == "thorough":
            return cls(timeout_ms=None, max_workers=1)
        raise ValueError(f"Unknown profile '{profile}'. Use 'fast' or 'thorough'.")


# Default config used when an engine is built without one
DEFAULT_CONFIG = VerifierConfig()
