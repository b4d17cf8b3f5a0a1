"""
Level band and qualification helpers.

Pure functions over ReferralRules; no database access.
"""

import math
from collections.abc import Sequence
from decimal import Decimal

from compensation.config.business_constants import (
    QUALIFICATION_FLAT_LEVELS,
    QUALIFICATION_MID_LEVELS,
)
from compensation.config.snapshot import LevelBand, QualificationRules


def resolve_band_percent(
    bands: Sequence[LevelBand], level: int
) -> Decimal | None:
    """
    Resolve the percent paid at a level.

    Bands are scanned in declaration order and the first match wins, so
    overlapping bands resolve to the earlier one.

    Args:
        bands: Configured level bands
        level: Ancestor level (1 = first ancestor above the direct upline)

    Returns:
        Percent, or None if no band covers the level

    Example:
        >>> bands = [LevelBand(level_from=1, level_to=5, percent=Decimal("5")),
        ...          LevelBand(level_from=6, level_to=10, percent=Decimal("4"))]
        >>> resolve_band_percent(bands, 6)
        Decimal('4')
        >>> resolve_band_percent(bands, 26) is None
        True
    """
    for band in bands:
        if band.matches(level):
            return band.percent
    return None


def required_direct_referrals(level: int, rules: QualificationRules) -> int:
    """
    Direct referrals an ancestor needs to earn at a level.

    Levels 1-3 need a flat minimum. Deeper levels need ceil(level / ratio)
    with one ratio for levels 4-13 and another from level 14 on.

    Args:
        level: Ancestor level
        rules: Qualification rules

    Returns:
        Required direct referral count

    Example:
        >>> required_direct_referrals(7, QualificationRules())
        3
        >>> required_direct_referrals(15, QualificationRules())
        8
    """
    if level <= QUALIFICATION_FLAT_LEVELS[1]:
        return rules.flat_minimum

    ratio = (
        rules.mid_band_ratio
        if level <= QUALIFICATION_MID_LEVELS[1]
        else rules.high_band_ratio
    )
    return math.ceil(Decimal(level) / ratio)


def is_qualified(
    direct_referral_count: int, level: int, rules: QualificationRules
) -> bool:
    """
    Check whether an ancestor qualifies for a level.

    Args:
        direct_referral_count: Ancestor's direct referrals
        level: Ancestor level
        rules: Qualification rules

    Returns:
        True when qualification is disabled or the count is high enough
    """
    if not rules.enabled:
        return True
    return direct_referral_count >= required_direct_referrals(level, rules)
