"""
Enumerations shared by models, services and configuration.

All status and type columns are stored as their string values.
"""

from enum import StrEnum


class ProgramType(StrEnum):
    """Account program track."""

    INVESTOR = "INVESTOR"
    LEADER = "LEADER"


class AccountStatus(StrEnum):
    """Account lifecycle status."""

    ACTIVE_INVESTOR = "ACTIVE_INVESTOR"
    ACTIVE_LEADER = "ACTIVE_LEADER"
    PENDING_ACTIVATION = "PENDING_ACTIVATION"
    AUTO_BLOCKED = "AUTO_BLOCKED"
    BLOCKED = "BLOCKED"


class AccountRole(StrEnum):
    """Role used to authorize admin commands."""

    USER = "USER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class PositionStatus(StrEnum):
    """Position lifecycle status."""

    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class CapStatus(StrEnum):
    """Earning cap state of a position or tracker."""

    ACTIVE = "ACTIVE"
    CAP_REACHED = "CAP_REACHED"
    RENEWAL_PENDING = "RENEWAL_PENDING"


CAPPED_STATUSES = frozenset({CapStatus.CAP_REACHED, CapStatus.RENEWAL_PENDING})


class CapAction(StrEnum):
    """What happens once a cap is reached."""

    STOP_EARNINGS = "STOP_EARNINGS"
    BLOCK_WITHDRAWALS = "BLOCK_WITHDRAWALS"
    STOP_BOTH = "STOP_BOTH"

    @property
    def stops_earnings(self) -> bool:
        return self in (CapAction.STOP_EARNINGS, CapAction.STOP_BOTH)

    @property
    def blocks_withdrawals(self) -> bool:
        return self in (CapAction.BLOCK_WITHDRAWALS, CapAction.STOP_BOTH)


class IncomeType(StrEnum):
    """
    Ledger entry type.

    Closed set of entry kinds. Legacy strings written by older tooling
    ("daily_roi", "direct_referral", "level_income", "bonus", ...) are
    normalized once with IncomeType.parse() at the boundary.
    """

    DAILY_YIELD = "DAILY_YIELD"
    REFERRAL_DIRECT = "REFERRAL_DIRECT"
    REFERRAL_LEVEL = "REFERRAL_LEVEL"
    ACHIEVEMENT = "ACHIEVEMENT"
    ADMIN_ADJUST = "ADMIN_ADJUST"
    TRANSFER_IN = "TRANSFER_IN"
    TRANSFER_OUT = "TRANSFER_OUT"
    ACTIVATION_PAID = "ACTIVATION_PAID"
    ACTIVATION_RECEIVED = "ACTIVATION_RECEIVED"
    RENEWAL_PAID = "RENEWAL_PAID"
    PAYOUT_REQUEST = "PAYOUT_REQUEST"

    @classmethod
    def parse(cls, value: "str | IncomeType") -> "IncomeType":
        """
        Normalize a raw income type string.

        Args:
            value: Enum member, canonical name or legacy alias

        Returns:
            Canonical IncomeType

        Raises:
            ValueError: If value is not a known type or alias
        """
        if isinstance(value, cls):
            return value
        key = str(value).strip()
        alias = _INCOME_TYPE_ALIASES.get(key.lower())
        if alias is not None:
            return alias
        try:
            return cls(key.upper())
        except ValueError:
            raise ValueError(f"Unknown income type: {value!r}") from None

    @property
    def is_referral(self) -> bool:
        return self in (IncomeType.REFERRAL_DIRECT, IncomeType.REFERRAL_LEVEL)


_INCOME_TYPE_ALIASES: dict[str, IncomeType] = {
    "daily_roi": IncomeType.DAILY_YIELD,
    "roi": IncomeType.DAILY_YIELD,
    "direct_referral": IncomeType.REFERRAL_DIRECT,
    "referral_direct": IncomeType.REFERRAL_DIRECT,
    "direct_income": IncomeType.REFERRAL_DIRECT,
    "level_income": IncomeType.REFERRAL_LEVEL,
    "referral_level": IncomeType.REFERRAL_LEVEL,
    "bonus": IncomeType.ACHIEVEMENT,
    "achievement": IncomeType.ACHIEVEMENT,
    "admin_adjust": IncomeType.ADMIN_ADJUST,
    "payout_request": IncomeType.PAYOUT_REQUEST,
}

# Debits that move money off the platform
OUTBOUND_TYPES = frozenset({IncomeType.PAYOUT_REQUEST})


class EntryStatus(StrEnum):
    """Ledger entry status."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"


SETTLED_STATUSES = frozenset({EntryStatus.APPROVED, EntryStatus.COMPLETED})


class PayerRole(StrEnum):
    """Who pays for an activation or renewal."""

    SELF = "SELF"
    SPONSOR = "SPONSOR"
    ADMIN = "ADMIN"


class PaymentMethod(StrEnum):
    """How an activation or renewal is paid."""

    USER_WALLET = "user_wallet"
    SPONSOR_WALLET = "sponsor_wallet"
    PAYMENT_GATEWAY = "payment_gateway"
    ADMIN_COMPLIMENTARY = "admin_complimentary"

    @property
    def debits_wallet(self) -> bool:
        return self in (PaymentMethod.USER_WALLET, PaymentMethod.SPONSOR_WALLET)


class PayoutMode(StrEnum):
    """How referral credits land in the wallet."""

    INSTANT_TO_WALLET = "INSTANT_TO_WALLET"
    PENDING_APPROVAL = "PENDING_APPROVAL"


class PayoutStatus(StrEnum):
    """Weekly payout request status."""

    PENDING = "PENDING"
    PAID = "PAID"


class AdminCommandType(StrEnum):
    """Pre-authorized administrative command."""

    ADJUST_WALLET = "ADJUST_WALLET"
    ACTIVATE = "ACTIVATE"
    RENEW = "RENEW"
    RECALCULATE_CAP = "RECALCULATE_CAP"
