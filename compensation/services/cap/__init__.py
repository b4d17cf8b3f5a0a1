"""
Cap services package.

- cap_calculator: pure cap arithmetic (cap terms, credit check)
- cap_evaluator: per-cycle accumulator gating credits
"""

from compensation.services.cap.cap_calculator import (
    CapCheck,
    CapTerms,
    check_credit,
    compute_cap_terms,
)
from compensation.services.cap.cap_evaluator import CapDecision, CapEvaluator


__all__ = [
    "CapCheck",
    "CapDecision",
    "CapEvaluator",
    "CapTerms",
    "check_credit",
    "compute_cap_terms",
]
