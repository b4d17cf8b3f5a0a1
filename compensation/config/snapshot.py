"""
Configuration snapshot models.

A ConfigurationSnapshot is an immutable, versioned value passed explicitly
into every operation and batch tick. Services never read tunables from
ambient state.
"""

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from compensation.config.business_constants import (
    DEFAULT_ADMIN_CHARGES_PERCENT,
    DEFAULT_DIRECT_REFERRAL_PERCENT,
    DEFAULT_INVESTOR_CAP_MULTIPLIER,
    DEFAULT_LEADER_BASE_AMOUNT,
    DEFAULT_LEADER_CAP_MULTIPLIER,
    DEFAULT_LEVEL_BANDS,
    DEFAULT_MAX_LEVELS,
    DEFAULT_MAX_WORKING_DAYS,
    DEFAULT_PAYOUT_RELEASE_WEEKDAY,
    DEFAULT_QUALIFICATION_FLAT_MINIMUM,
    DEFAULT_QUALIFICATION_HIGH_RATIO,
    DEFAULT_QUALIFICATION_MID_RATIO,
    DEFAULT_RENEWAL_REQUIRED_MESSAGE,
    DEFAULT_SECURITY_THRESHOLD,
    DEFAULT_WITH_SECURITY_DAILY_PERCENT,
    DEFAULT_WITHOUT_SECURITY_DAILY_PERCENT,
)
from compensation.models.enums import (
    AccountStatus,
    CapAction,
    IncomeType,
    PayoutMode,
    ProgramType,
)


class _Frozen(BaseModel):
    """Base for snapshot parts: immutable, unknown keys ignored."""

    model_config = ConfigDict(frozen=True, extra="ignore")


# ---------------------------------------------------------------------------
# Yield rules
# ---------------------------------------------------------------------------


class YieldTier(_Frozen):
    """Daily yield tier."""

    daily_percent: Decimal = Field(..., ge=0, description="Daily yield percentage")
    max_working_days: int = Field(
        default=DEFAULT_MAX_WORKING_DAYS, ge=0,
        description="Working days after which yield stops"
    )
    min_package_amount: Decimal | None = Field(
        default=None, ge=0,
        description="Base amount at or above which this tier applies"
    )


class YieldRules(_Frozen):
    """Daily yield rules ("with security" / "without security" tiers)."""

    with_security: YieldTier = YieldTier(
        daily_percent=DEFAULT_WITH_SECURITY_DAILY_PERCENT,
        min_package_amount=DEFAULT_SECURITY_THRESHOLD,
    )
    without_security: YieldTier = YieldTier(
        daily_percent=DEFAULT_WITHOUT_SECURITY_DAILY_PERCENT,
    )
    leader_yield_enabled: bool = False

    @property
    def security_threshold(self) -> Decimal:
        return self.with_security.min_package_amount or DEFAULT_SECURITY_THRESHOLD


# ---------------------------------------------------------------------------
# Referral rules
# ---------------------------------------------------------------------------


class LevelBand(_Frozen):
    """Percent paid to ancestors whose level falls in [level_from, level_to]."""

    level_from: int = Field(..., ge=1)
    level_to: int = Field(..., ge=1)
    percent: Decimal = Field(..., ge=0)

    @model_validator(mode="after")
    def check_range(self) -> "LevelBand":
        if self.level_to < self.level_from:
            raise ValueError(
                f"level_to ({self.level_to}) must be >= level_from ({self.level_from})"
            )
        return self

    def matches(self, level: int) -> bool:
        return self.level_from <= level <= self.level_to


class AntiAbuseLimits(_Frozen):
    """Referral anti-abuse ceilings. Zero means unlimited."""

    max_referral_income_per_day: Decimal = Field(default=Decimal("0"), ge=0)
    max_per_referred_user: Decimal = Field(default=Decimal("0"), ge=0)
    block_self_referral: bool = True
    block_circular_referral: bool = True


class QualificationRules(_Frozen):
    """Direct-referral count an ancestor needs to earn at a given level."""

    enabled: bool = False
    flat_minimum: int = Field(default=DEFAULT_QUALIFICATION_FLAT_MINIMUM, ge=0)
    mid_band_ratio: Decimal = Field(default=DEFAULT_QUALIFICATION_MID_RATIO, gt=0)
    high_band_ratio: Decimal = Field(default=DEFAULT_QUALIFICATION_HIGH_RATIO, gt=0)


class ReferralRules(_Frozen):
    """Referral income rules."""

    enable_referral_income_global: bool = True
    enable_investor_referral_income: bool = True
    # Locked off: leaders never grant or receive referral income
    enable_leader_referral_income: Literal[False] = False
    direct_referral_percent: Decimal = Field(
        default=DEFAULT_DIRECT_REFERRAL_PERCENT, ge=0, le=100
    )
    enable_multi_level_income: bool = False
    max_levels: int = Field(default=DEFAULT_MAX_LEVELS, ge=0)
    level_bands: tuple[LevelBand, ...] = tuple(
        LevelBand(level_from=lo, level_to=hi, percent=pct)
        for lo, hi, pct in DEFAULT_LEVEL_BANDS
    )
    referral_income_counts_toward_cap: bool = True
    eligible_statuses: tuple[AccountStatus, ...] = (AccountStatus.ACTIVE_INVESTOR,)
    payout_mode: PayoutMode = PayoutMode.INSTANT_TO_WALLET
    min_activation_amount: Decimal = Field(default=Decimal("0"), ge=0)
    anti_abuse: AntiAbuseLimits = AntiAbuseLimits()
    qualification: QualificationRules = QualificationRules()


# ---------------------------------------------------------------------------
# Cap / renewal rules
# ---------------------------------------------------------------------------


class RenewalOptions(_Frozen):
    """Who may trigger and pay for a renewal."""

    admin_can_renew: bool = True
    user_can_request_renewal: bool = True
    sponsor_can_renew: bool = False
    wallet_can_pay_renewal: bool = True
    payment_gateway_renewal: bool = True


class CapRules(_Frozen):
    """Earning cap and ID renewal rules."""

    enable_id_renewal_rule: bool = False
    cap_action: CapAction = CapAction.STOP_EARNINGS
    eligible_income_types: frozenset[IncomeType] = frozenset({
        IncomeType.DAILY_YIELD,
        IncomeType.REFERRAL_DIRECT,
        IncomeType.REFERRAL_LEVEL,
        IncomeType.ACHIEVEMENT,
    })
    grace_limit: Decimal = Field(default=Decimal("0"), ge=0)
    auto_mark_cap_reached: bool = True
    renewal_required_message: str = DEFAULT_RENEWAL_REQUIRED_MESSAGE
    renewal_options: RenewalOptions = RenewalOptions()
    renewal_fee_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    allow_renew_same_plan: bool = True
    allow_renew_upgrade: bool = True

    @field_validator("eligible_income_types", mode="before")
    @classmethod
    def normalize_income_types(cls, v):
        """Accept legacy aliases such as 'daily_roi' or 'direct_referral'."""
        if v is None:
            return frozenset()
        if isinstance(v, str):
            v = [v]
        return frozenset(IncomeType.parse(item) for item in v)

    def is_eligible(self, income_type: IncomeType) -> bool:
        return income_type in self.eligible_income_types


# ---------------------------------------------------------------------------
# Program, payout and transfer rules
# ---------------------------------------------------------------------------


class ProgramRules(_Frozen):
    """Per-program cap multipliers."""

    investor_cap_multiplier: Decimal = Field(
        default=DEFAULT_INVESTOR_CAP_MULTIPLIER, gt=0
    )
    leader_cap_multiplier: Decimal = Field(
        default=DEFAULT_LEADER_CAP_MULTIPLIER, gt=0
    )
    # Leaders' cap is computed against a flat base, not the package price
    leader_base_amount: Decimal = Field(default=DEFAULT_LEADER_BASE_AMOUNT, gt=0)

    def multiplier_for(self, program: ProgramType) -> Decimal:
        if program == ProgramType.LEADER:
            return self.leader_cap_multiplier
        return self.investor_cap_multiplier


class PayoutRules(_Frozen):
    """Weekly payout rules."""

    enable_weekly_payouts: bool = True
    admin_charges_percent: Decimal = Field(
        default=DEFAULT_ADMIN_CHARGES_PERCENT, ge=0, le=100
    )
    payout_release_weekday: int = Field(
        default=DEFAULT_PAYOUT_RELEASE_WEEKDAY, ge=0, le=6
    )
    min_payout_amount: Decimal = Field(default=Decimal("0"), ge=0)
    max_payout_amount: Decimal = Field(default=Decimal("0"), ge=0)


class TransferRules(_Frozen):
    """Wallet-to-wallet transfer rules."""

    enable_transfers: bool = True
    fee_type: Literal["percent", "flat"] = "percent"
    fee_value: Decimal = Field(default=Decimal("0"), ge=0)
    min_amount: Decimal = Field(default=Decimal("0"), ge=0)


class Package(_Frozen):
    """Read-only catalog entry."""

    id: str
    name: str
    price: Decimal = Field(..., gt=0)


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


class ConfigurationSnapshot(_Frozen):
    """
    Versioned configuration for one operation or batch tick.

    Example:
        >>> snapshot = ConfigurationSnapshot.model_validate(
        ...     {"version": 3, "referral": {"direct_referral_percent": "5"}}
        ... )
        >>> snapshot.referral.direct_referral_percent
        Decimal('5')
    """

    version: int = Field(default=0, ge=0)
    yield_rules: YieldRules = Field(default_factory=YieldRules, alias="yield")
    referral: ReferralRules = Field(default_factory=ReferralRules)
    cap: CapRules = Field(default_factory=CapRules)
    program: ProgramRules = Field(default_factory=ProgramRules)
    payout: PayoutRules = Field(default_factory=PayoutRules)
    transfer: TransferRules = Field(default_factory=TransferRules)
    packages: tuple[Package, ...] = ()

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    def get_package(self, package_id: str) -> Package | None:
        """Look up a catalog package by id."""
        for package in self.packages:
            if package.id == package_id:
                return package
        return None


DEFAULT_SNAPSHOT = ConfigurationSnapshot()
