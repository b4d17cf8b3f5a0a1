"""
Referral services package.

- bands: level band resolution and qualification thresholds
- referral_distributor: direct and multi-level credits for one activation
"""

from compensation.services.referral.bands import (
    is_qualified,
    required_direct_referrals,
    resolve_band_percent,
)
from compensation.services.referral.referral_distributor import (
    ActivationEvent,
    DistributionResult,
    LevelCredit,
    LevelSkip,
    LevelSkipReason,
    ReferralDistributor,
    ReferralSkipReason,
)


__all__ = [
    "ActivationEvent",
    "DistributionResult",
    "LevelCredit",
    "LevelSkip",
    "LevelSkipReason",
    "ReferralDistributor",
    "ReferralSkipReason",
    "is_qualified",
    "required_direct_referrals",
    "resolve_band_percent",
]
