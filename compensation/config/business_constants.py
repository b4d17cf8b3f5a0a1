"""
Business logic constants.

Default tunables used when no configuration document has been published.
Every value here can be overridden by a ConfigurationSnapshot.
"""

from decimal import Decimal


# Daily yield tiers (Mon-Fri working days)
DEFAULT_WITH_SECURITY_DAILY_PERCENT = Decimal("2")
DEFAULT_WITHOUT_SECURITY_DAILY_PERCENT = Decimal("1.5")
DEFAULT_MAX_WORKING_DAYS = 60
DEFAULT_SECURITY_THRESHOLD = Decimal("50000")

# Referral income
DEFAULT_DIRECT_REFERRAL_PERCENT = Decimal("5")
DEFAULT_MAX_LEVELS = 25

# (level_from, level_to, percent); first matching band wins
DEFAULT_LEVEL_BANDS: tuple[tuple[int, int, Decimal], ...] = (
    (1, 5, Decimal("5")),
    (6, 10, Decimal("4")),
    (11, 15, Decimal("3")),
    (16, 20, Decimal("2")),
    (21, 25, Decimal("1")),
)

# Multi-level qualification (direct referrals required per level)
QUALIFICATION_FLAT_LEVELS = (1, 3)
QUALIFICATION_MID_LEVELS = (4, 13)
QUALIFICATION_HIGH_LEVELS = (14, 25)
DEFAULT_QUALIFICATION_FLAT_MINIMUM = 1
DEFAULT_QUALIFICATION_MID_RATIO = Decimal("3")
DEFAULT_QUALIFICATION_HIGH_RATIO = Decimal("2")

# Cap multipliers per program
DEFAULT_INVESTOR_CAP_MULTIPLIER = Decimal("2.0")
DEFAULT_LEADER_CAP_MULTIPLIER = Decimal("3.0")
DEFAULT_LEADER_BASE_AMOUNT = Decimal("1000")

DEFAULT_RENEWAL_REQUIRED_MESSAGE = (
    "You reached your earnings cap. Renew ID to continue earning."
)

# Weekly payouts
DEFAULT_ADMIN_CHARGES_PERCENT = Decimal("10")
DEFAULT_PAYOUT_RELEASE_WEEKDAY = 0  # Monday

# Business calendar: Monday=0 ... Friday=4
WORKING_WEEKDAYS = frozenset({0, 1, 2, 3, 4})

# Monetary precision for posted amounts
MONEY_QUANTUM = Decimal("0.01")
