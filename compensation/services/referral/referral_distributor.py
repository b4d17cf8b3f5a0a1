"""
Referral distributor.

Computes and posts the direct and multi-level referral credits generated
by one activation. Non-success outcomes (leader exclusion, ineligible
status, already processed, anti-abuse) are returned as reason codes: they
are frequent, expected business data, not errors.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from compensation.config.settings import settings
from compensation.config.snapshot import ConfigurationSnapshot
from compensation.models.account import Account
from compensation.models.enums import (
    AccountStatus,
    EntryStatus,
    IncomeType,
    PayoutMode,
)
from compensation.repositories.account_repository import AccountRepository
from compensation.repositories.audit_repository import AuditRepository
from compensation.repositories.ledger_repository import LedgerRepository
from compensation.services.base_service import BaseService, transaction
from compensation.services.entry_metadata import EntryMetadata
from compensation.services.ledger.ledger_service import LedgerService
from compensation.services.referral.bands import is_qualified, resolve_band_percent
from compensation.utils.datetime_utils import utc_today
from compensation.utils.db_decorators import retry_on_conflict
from compensation.utils.decimal_utils import percent_of, to_decimal
from compensation.utils.exceptions import (
    CapExceeded,
    CapRejection,
    DuplicateEntry,
    NotFoundError,
    ValidationError,
)


class ReferralSkipReason(StrEnum):
    """Why an activation produced no direct referral credit."""

    EMERGENCY_STOP = "emergency_stop"
    REFERRAL_DISABLED = "referral_disabled"
    LEADER_ACCOUNT = "leader_account"
    INELIGIBLE_STATUS = "ineligible_status"
    BELOW_MINIMUM = "below_minimum"
    NO_UPLINE = "no_upline"
    UPLINE_NOT_FOUND = "upline_not_found"
    UPLINE_LEADER = "upline_leader"
    UPLINE_INELIGIBLE = "upline_ineligible"
    ALREADY_PROCESSED = "already_processed"
    SELF_REFERRAL = "self_referral"
    CIRCULAR_REFERRAL = "circular_referral"
    DAILY_LIMIT = "daily_limit"
    PER_USER_LIMIT = "per_user_limit"
    CAP_EXCEEDED = "cap_exceeded"


class LevelSkipReason(StrEnum):
    """Why one ancestor received nothing in the multi-level pass."""

    NO_BAND = "no_band"
    INELIGIBLE_ANCESTOR = "ineligible_ancestor"
    NOT_QUALIFIED = "not_qualified"
    CIRCULAR = "circular"
    ALREADY_PROCESSED = "already_processed"
    ZERO_AMOUNT = "zero_amount"
    CAP_EXCEEDED = "cap_exceeded"


@dataclass(frozen=True)
class ActivationEvent:
    """A position became earning-eligible."""

    account_id: int
    position_id: int | None
    activation_amount: Decimal
    position_snapshot: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LevelCredit:
    """One posted multi-level credit."""

    level: int
    account_id: int
    percent: Decimal
    amount: Decimal
    ledger_entry_id: int


@dataclass(frozen=True)
class LevelSkip:
    """One ancestor skipped in the multi-level pass."""

    level: int
    account_id: int
    reason: LevelSkipReason


@dataclass
class DistributionResult:
    """Result of distributing one activation."""

    success: bool
    reason: ReferralSkipReason | None = None
    direct_upline_id: int | None = None
    direct_amount: Decimal = Decimal("0")
    direct_entry_id: int | None = None
    direct_rejection: CapRejection | None = None
    level_credits: list[LevelCredit] = field(default_factory=list)
    level_skips: list[LevelSkip] = field(default_factory=list)

    @property
    def per_level_amounts(self) -> list[tuple[int, Decimal]]:
        return [(credit.level, credit.amount) for credit in self.level_credits]

    @property
    def total_amount(self) -> Decimal:
        return self.direct_amount + sum(
            (credit.amount for credit in self.level_credits), Decimal("0")
        )

    @classmethod
    def skipped(
        cls, reason: ReferralSkipReason, direct_upline_id: int | None = None
    ) -> "DistributionResult":
        return cls(success=False, reason=reason, direct_upline_id=direct_upline_id)


class ReferralDistributor(BaseService):
    """
    Referral distributor.

    One distribution is one unit of work: the existence check and every
    posting commit together. The direct upline's Account row is locked
    before the existence check, so two concurrent distributions of the
    same activation serialize and the second one sees the first's entries.
    """

    def __init__(
        self,
        session: AsyncSession,
        snapshot: ConfigurationSnapshot,
        ledger: LedgerService | None = None,
    ) -> None:
        """
        Initialize referral distributor.

        Args:
            session: Async database session
            snapshot: Configuration in force for this distribution
            ledger: Ledger service (built if omitted)
        """
        super().__init__(session)
        self.snapshot = snapshot
        self.rules = snapshot.referral
        self.ledger = ledger or LedgerService(session, snapshot)
        self.account_repo = AccountRepository(session)
        self.ledger_repo = LedgerRepository(session)
        self.audit_repo = AuditRepository(session)

    @retry_on_conflict()
    @transaction
    async def distribute(self, event: ActivationEvent) -> DistributionResult:
        """
        Distribute referral income for one activation.

        Args:
            event: Activation event

        Returns:
            DistributionResult (success=False carries a reason code)

        Raises:
            ValidationError: Non-positive activation amount
            NotFoundError: Activated account missing
        """
        amount = to_decimal(event.activation_amount)
        if amount <= 0:
            raise ValidationError(
                f"Activation amount must be positive: {event.activation_amount}"
            )

        if settings.emergency_stop_referral:
            self.logger.warning(
                "Referral distribution skipped: emergency stop",
                extra={"account_id": event.account_id},
            )
            return DistributionResult.skipped(ReferralSkipReason.EMERGENCY_STOP)

        account = await self.account_repo.get_by_id(event.account_id)
        if account is None:
            raise NotFoundError(f"Account {event.account_id} not found")

        if account.is_leader:
            return self._skip(account, ReferralSkipReason.LEADER_ACCOUNT)

        if not (
            self.rules.enable_referral_income_global
            and self.rules.enable_investor_referral_income
        ):
            await self._count_referral(account)
            return self._skip(account, ReferralSkipReason.REFERRAL_DISABLED)

        if account.status not in self.rules.eligible_statuses:
            return self._skip(account, ReferralSkipReason.INELIGIBLE_STATUS)

        if amount < self.rules.min_activation_amount:
            await self._count_referral(account)
            return self._skip(account, ReferralSkipReason.BELOW_MINIMUM)

        if account.upline_id is None:
            return self._skip(account, ReferralSkipReason.NO_UPLINE)

        upline = await self.account_repo.get_for_update(account.upline_id)
        if upline is None:
            return self._skip(account, ReferralSkipReason.UPLINE_NOT_FOUND)
        if upline.is_leader:
            return self._skip(account, ReferralSkipReason.UPLINE_LEADER, upline.id)
        if upline.status != AccountStatus.ACTIVE_INVESTOR:
            return self._skip(
                account, ReferralSkipReason.UPLINE_INELIGIBLE, upline.id
            )

        if await self.ledger_repo.exists_referral_entry(upline.id, account.id):
            return self._skip(
                account, ReferralSkipReason.ALREADY_PROCESSED, upline.id
            )

        direct_amount = percent_of(amount, self.rules.direct_referral_percent)

        abuse = await self._check_anti_abuse(account, upline, direct_amount)
        if abuse is not None:
            return self._skip(account, abuse, upline.id)

        result = DistributionResult(success=True, direct_upline_id=upline.id)

        if direct_amount > 0:
            try:
                credit = await self.ledger.post(
                    upline.id,
                    direct_amount,
                    IncomeType.REFERRAL_DIRECT,
                    description=f"Direct referral income from {account.code}",
                    metadata=EntryMetadata(
                        source_account_id=account.id,
                        position_id=event.position_id,
                        extra={
                            "activation_amount": str(amount),
                            "percent": str(self.rules.direct_referral_percent),
                        },
                    ),
                    status=self._credit_status(),
                    idempotency_key=f"referral_direct:{upline.id}:{account.id}",
                )
            except DuplicateEntry:
                return self._skip(
                    account, ReferralSkipReason.ALREADY_PROCESSED, upline.id
                )
            except CapExceeded as e:
                result.success = False
                result.reason = ReferralSkipReason.CAP_EXCEEDED
                result.direct_rejection = e.to_rejection()
            else:
                result.direct_amount = direct_amount
                result.direct_entry_id = credit.ledger_entry_id
                await self.audit_repo.record(
                    "referral_direct_credited",
                    account_id=upline.id,
                    ledger_entry_id=credit.ledger_entry_id,
                    config_version=self.snapshot.version,
                    source_account_id=account.id,
                    activation_amount=amount,
                    amount=direct_amount,
                    percent=self.rules.direct_referral_percent,
                )

        await self._count_referral(account)

        if self.rules.enable_multi_level_income and self.rules.level_bands:
            await self._distribute_levels(account, upline, amount, event, result)

        self.logger.info(
            "Referral income distributed",
            extra={
                "account_id": account.id,
                "direct_upline_id": upline.id,
                "direct_amount": str(result.direct_amount),
                "levels_credited": len(result.level_credits),
                "total_amount": str(result.total_amount),
                "config_version": self.snapshot.version,
            },
        )

        return result

    async def _distribute_levels(
        self,
        account: Account,
        upline: Account,
        amount: Decimal,
        event: ActivationEvent,
        result: DistributionResult,
    ) -> None:
        """
        Walk the chain above the direct upline and post level credits.

        Level 1 is the first ancestor above the direct upline.
        """
        chain = await self.account_repo.get_upline_chain(
            upline.id, self.rules.max_levels
        )

        for level, ancestor in enumerate(chain, start=1):
            percent = resolve_band_percent(self.rules.level_bands, level)
            reason = await self._level_skip_reason(account, ancestor, level, percent)
            if reason is not None:
                result.level_skips.append(LevelSkip(level, ancestor.id, reason))
                continue

            level_amount = percent_of(amount, percent)
            if level_amount <= 0:
                result.level_skips.append(
                    LevelSkip(level, ancestor.id, LevelSkipReason.ZERO_AMOUNT)
                )
                continue

            try:
                credit = await self.ledger.post(
                    ancestor.id,
                    level_amount,
                    IncomeType.REFERRAL_LEVEL,
                    description=f"Level {level} income from {account.code}",
                    metadata=EntryMetadata(
                        source_account_id=account.id,
                        level=level,
                        position_id=event.position_id,
                        extra={
                            "activation_amount": str(amount),
                            "percent": str(percent),
                        },
                    ),
                    status=self._credit_status(),
                    idempotency_key=(
                        f"referral_level:{ancestor.id}:{account.id}:{level}"
                    ),
                )
            except DuplicateEntry:
                result.level_skips.append(
                    LevelSkip(level, ancestor.id, LevelSkipReason.ALREADY_PROCESSED)
                )
                continue
            except CapExceeded:
                result.level_skips.append(
                    LevelSkip(level, ancestor.id, LevelSkipReason.CAP_EXCEEDED)
                )
                continue

            result.level_credits.append(
                LevelCredit(
                    level=level,
                    account_id=ancestor.id,
                    percent=percent,
                    amount=level_amount,
                    ledger_entry_id=credit.ledger_entry_id,
                )
            )
            await self.audit_repo.record(
                "referral_level_credited",
                account_id=ancestor.id,
                ledger_entry_id=credit.ledger_entry_id,
                config_version=self.snapshot.version,
                source_account_id=account.id,
                level=level,
                amount=level_amount,
                percent=percent,
            )

    async def _level_skip_reason(
        self,
        account: Account,
        ancestor: Account,
        level: int,
        percent: Decimal | None,
    ) -> LevelSkipReason | None:
        if percent is None:
            return LevelSkipReason.NO_BAND
        if ancestor.id == account.id:
            return LevelSkipReason.CIRCULAR
        if ancestor.is_leader or ancestor.status != AccountStatus.ACTIVE_INVESTOR:
            return LevelSkipReason.INELIGIBLE_ANCESTOR
        if not is_qualified(
            ancestor.direct_referral_count, level, self.rules.qualification
        ):
            return LevelSkipReason.NOT_QUALIFIED
        if await self.ledger_repo.exists_referral_entry(
            ancestor.id, account.id, level=level
        ):
            return LevelSkipReason.ALREADY_PROCESSED
        return None

    async def _check_anti_abuse(
        self, account: Account, upline: Account, direct_amount: Decimal
    ) -> ReferralSkipReason | None:
        limits = self.rules.anti_abuse

        if limits.block_self_referral and upline.id == account.id:
            return ReferralSkipReason.SELF_REFERRAL

        if limits.block_circular_referral and upline.upline_id == account.id:
            return ReferralSkipReason.CIRCULAR_REFERRAL

        if limits.max_referral_income_per_day > 0:
            today_total = await self.ledger_repo.sum_referral_income_on(
                upline.id, utc_today()
            )
            if today_total + direct_amount > limits.max_referral_income_per_day:
                return ReferralSkipReason.DAILY_LIMIT

        if limits.max_per_referred_user > 0:
            from_user = await self.ledger_repo.sum_referral_income_from(
                upline.id, account.id
            )
            if from_user + direct_amount > limits.max_per_referred_user:
                return ReferralSkipReason.PER_USER_LIMIT

        return None

    async def _count_referral(self, account: Account) -> None:
        """Count the account in its upline's direct referrals, once."""
        if account.upline_id is None:
            return

        upline = await self.account_repo.get_by_id(account.upline_id)
        if upline is None or upline.is_leader:
            return

        if await self.account_repo.mark_referral_counted(account.id):
            await self.account_repo.increment_direct_referral_count(upline.id)

    def _credit_status(self) -> EntryStatus:
        if self.rules.payout_mode == PayoutMode.PENDING_APPROVAL:
            return EntryStatus.PENDING
        return EntryStatus.APPROVED

    def _skip(
        self,
        account: Account,
        reason: ReferralSkipReason,
        upline_id: int | None = None,
    ) -> DistributionResult:
        self.logger.info(
            "Referral distribution skipped",
            extra={
                "account_id": account.id,
                "upline_id": upline_id,
                "reason": reason.value,
            },
        )
        return DistributionResult.skipped(reason, upline_id)
