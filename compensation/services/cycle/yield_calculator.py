"""
Pure daily yield arithmetic.
"""

from decimal import Decimal

from compensation.config.snapshot import YieldRules, YieldTier
from compensation.utils.decimal_utils import percent_of


def select_tier(base_amount: Decimal, rules: YieldRules) -> YieldTier:
    """
    Select the yield tier of a position.

    Positions whose base amount reaches the "with security" minimum use
    that tier; all others use the "without security" tier.

    Args:
        base_amount: Position base amount
        rules: Yield rules

    Returns:
        Applicable tier

    Example:
        >>> select_tier(Decimal("50000"), YieldRules()).daily_percent
        Decimal('2')
        >>> select_tier(Decimal("49999"), YieldRules()).daily_percent
        Decimal('1.5')
    """
    if base_amount >= rules.security_threshold:
        return rules.with_security
    return rules.without_security


def daily_yield_amount(base_amount: Decimal, tier: YieldTier) -> Decimal:
    """
    Daily yield of a position, rounded to cents.

    Example:
        >>> daily_yield_amount(Decimal("10000"), YieldRules().without_security)
        Decimal('150.00')
    """
    if base_amount <= 0:
        return Decimal("0")
    return percent_of(base_amount, tier.daily_percent)


def has_days_left(working_days_processed: int, tier: YieldTier) -> bool:
    """Check whether a position still earns under its tier."""
    return working_days_processed < tier.max_working_days
