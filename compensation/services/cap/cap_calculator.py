"""
Pure cap arithmetic.

No database or ORM dependencies: every function works on Decimals and
configuration values only.
"""

from dataclasses import dataclass
from decimal import Decimal

from compensation.config.snapshot import ProgramRules
from compensation.models.enums import ProgramType
from compensation.utils.decimal_utils import quantize_money


@dataclass(frozen=True)
class CapTerms:
    """Base amount, multiplier and resulting cap of one cycle."""

    base_amount: Decimal
    multiplier: Decimal
    cap_amount: Decimal


@dataclass(frozen=True)
class CapCheck:
    """Outcome of checking one credit against a cap."""

    projected_total: Decimal
    cap_reached: bool
    within_grace: bool
    allowed: bool
    remaining: Decimal


def compute_cap_terms(
    base_amount: Decimal, program: ProgramType, rules: ProgramRules
) -> CapTerms:
    """
    Compute the cap of a cycle.

    Investors multiply their package price. Leaders multiply a configured
    flat base instead of what they paid.

    Args:
        base_amount: Package price of the position
        program: Account program
        rules: Program rules from the snapshot

    Returns:
        CapTerms

    Example:
        >>> compute_cap_terms(Decimal("50000"), ProgramType.INVESTOR, ProgramRules())
        CapTerms(base_amount=Decimal('50000'), multiplier=Decimal('2.0'), cap_amount=Decimal('100000.00'))
    """
    if program == ProgramType.LEADER:
        base_amount = rules.leader_base_amount

    multiplier = rules.multiplier_for(program)
    return CapTerms(
        base_amount=base_amount,
        multiplier=multiplier,
        cap_amount=quantize_money(base_amount * multiplier),
    )


def check_credit(
    earnings_total: Decimal,
    cap_amount: Decimal,
    amount: Decimal,
    grace_limit: Decimal,
    stops_earnings: bool,
) -> CapCheck:
    """
    Check a proposed credit against a cap.

    The cap amount itself is payable: reaching it exactly is allowed and
    marks the cap reached. Grace applies to the overage only, so with a
    grace limit of 0 a single unit past the cap is refused.

    Args:
        earnings_total: Eligible earnings so far in the cycle
        cap_amount: Cycle cap
        amount: Proposed credit
        grace_limit: Allowed overage beyond the cap
        stops_earnings: Whether the cap action stops credits

    Returns:
        CapCheck

    Example:
        >>> check_credit(Decimal("99000"), Decimal("100000"), Decimal("1000"),
        ...              Decimal("0"), True).allowed
        True
    """
    projected = earnings_total + amount
    cap_reached = projected >= cap_amount
    overage = projected - cap_amount
    within_grace = overage > 0 and overage <= grace_limit

    allowed = not (overage > 0 and not within_grace and stops_earnings)
    total_after = projected if allowed else earnings_total

    return CapCheck(
        projected_total=projected,
        cap_reached=cap_reached and allowed,
        within_grace=within_grace,
        allowed=allowed,
        remaining=max(cap_amount - total_after, Decimal("0")),
    )
