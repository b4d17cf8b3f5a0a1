"""
Cap evaluator.

Per (account, cycle) accumulator deciding whether a proposed credit may
post. State machine of a cycle: ACTIVE -> CAP_REACHED, one way; only a
renewal opens a new ACTIVE cycle.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from compensation.config.snapshot import ConfigurationSnapshot
from compensation.models.account import Account
from compensation.models.enums import CapStatus, IncomeType, ProgramType
from compensation.models.position import Position
from compensation.repositories.account_repository import AccountRepository
from compensation.repositories.cap_tracker_repository import CapTrackerRepository
from compensation.repositories.position_repository import PositionRepository
from compensation.services.base_service import BaseService
from compensation.services.cap.cap_calculator import check_credit, compute_cap_terms
from compensation.services.entry_metadata import NO_METADATA, EntryMetadata
from compensation.utils.datetime_utils import utc_now
from compensation.utils.exceptions import NotFoundError


@dataclass(frozen=True)
class CapDecision:
    """
    Result of a cap evaluation.

    ``tracked`` is False when the credit bypassed the cap entirely (rule
    disabled, ineligible type, referral not counted, no active position).
    """

    allowed: bool
    tracked: bool
    reason: str | None = None
    cap_status: str = CapStatus.ACTIVE.value
    earnings_total: Decimal = Decimal("0")
    cap_amount: Decimal = Decimal("0")
    remaining: Decimal | None = None
    cycle_number: int | None = None
    position_id: int | None = None
    newly_reached: bool = False

    @classmethod
    def untracked(cls, reason: str) -> "CapDecision":
        return cls(allowed=True, tracked=False, reason=reason)


class CapEvaluator(BaseService):
    """
    Gate credits against the earning cap of the account's current cycle.

    Lock order is Position then CapTracker. Renewal takes the Position
    lock first too, so an evaluation never straddles a cycle boundary.
    The evaluator never commits.
    """

    def __init__(
        self, session: AsyncSession, snapshot: ConfigurationSnapshot
    ) -> None:
        """
        Initialize cap evaluator.

        Args:
            session: Async database session
            snapshot: Configuration in force for this unit of work
        """
        super().__init__(session)
        self.snapshot = snapshot
        self.account_repo = AccountRepository(session)
        self.position_repo = PositionRepository(session)
        self.tracker_repo = CapTrackerRepository(session)

    async def evaluate(
        self,
        account_id: int,
        amount: Decimal,
        income_type: IncomeType,
        metadata: EntryMetadata = NO_METADATA,
    ) -> CapDecision:
        """
        Decide whether a credit may post and account for it if so.

        On an allowed, tracked credit the tracker total is increased in the
        same unit of work, and the cap state flips when the total reaches
        the cap. A refused credit leaves the tracker untouched.

        Args:
            account_id: Receiving account
            amount: Proposed credit (positive)
            income_type: Entry type
            metadata: Entry metadata (counts_toward_cap override)

        Returns:
            CapDecision
        """
        rules = self.snapshot.cap

        if not rules.enable_id_renewal_rule:
            return CapDecision.untracked("renewal_rule_disabled")

        if income_type.is_referral and not self._referral_counts(metadata):
            return CapDecision.untracked("referral_not_counted")

        if not rules.is_eligible(income_type):
            return CapDecision.untracked("income_type_not_eligible")

        position = await self.position_repo.get_active_for_update(account_id)
        if position is None:
            self.logger.debug(
                "No active position, credit not tracked",
                extra={"account_id": account_id, "income_type": income_type.value},
            )
            return CapDecision.untracked("no_active_position")

        tracker = await self.tracker_repo.get_or_create_for_update(
            account_id=account_id,
            cycle_number=position.cycle_number,
            cap_amount=position.cap_amount,
            position_id=position.id,
        )

        if position.is_capped and rules.cap_action.stops_earnings:
            return CapDecision(
                allowed=False,
                tracked=True,
                reason=rules.renewal_required_message,
                cap_status=position.cap_status,
                earnings_total=tracker.eligible_earnings_total,
                cap_amount=tracker.cap_amount,
                remaining=tracker.remaining,
                cycle_number=tracker.cycle_number,
                position_id=position.id,
            )

        check = check_credit(
            earnings_total=tracker.eligible_earnings_total,
            cap_amount=tracker.cap_amount,
            amount=amount,
            grace_limit=rules.grace_limit,
            stops_earnings=rules.cap_action.stops_earnings,
        )

        if not check.allowed:
            return CapDecision(
                allowed=False,
                tracked=True,
                reason=(
                    f"Earning cap exceeded: {check.projected_total} > "
                    f"{tracker.cap_amount} (grace {rules.grace_limit})"
                ),
                cap_status=tracker.status,
                earnings_total=tracker.eligible_earnings_total,
                cap_amount=tracker.cap_amount,
                remaining=check.remaining,
                cycle_number=tracker.cycle_number,
                position_id=position.id,
            )

        tracker.eligible_earnings_total = check.projected_total
        newly_reached = check.cap_reached and tracker.status == CapStatus.ACTIVE
        if newly_reached:
            reached_at = utc_now()
            tracker.status = CapStatus.CAP_REACHED.value
            tracker.cap_reached_at = reached_at
            if rules.auto_mark_cap_reached:
                position.cap_status = CapStatus.CAP_REACHED.value
                position.cap_reached_at = reached_at

            self.logger.info(
                "Earning cap reached",
                extra={
                    "account_id": account_id,
                    "cycle_number": tracker.cycle_number,
                    "earnings_total": str(tracker.eligible_earnings_total),
                    "cap_amount": str(tracker.cap_amount),
                },
            )

        await self.session.flush()

        return CapDecision(
            allowed=True,
            tracked=True,
            cap_status=position.cap_status,
            earnings_total=tracker.eligible_earnings_total,
            cap_amount=tracker.cap_amount,
            remaining=check.remaining,
            cycle_number=tracker.cycle_number,
            position_id=position.id,
            newly_reached=newly_reached,
        )

    async def check_withdrawal(self, account_id: int) -> CapDecision:
        """
        Decide whether an outbound debit is allowed under the cap action.

        Args:
            account_id: Account requesting the debit

        Returns:
            CapDecision (not allowed when withdrawals are blocked)
        """
        rules = self.snapshot.cap
        if not (rules.enable_id_renewal_rule and rules.cap_action.blocks_withdrawals):
            return CapDecision.untracked("withdrawals_not_blocked")

        position = await self.position_repo.get_active(account_id)
        if position is None or not position.is_capped:
            return CapDecision.untracked("not_capped")

        tracker = await self.tracker_repo.get_for_update(
            account_id, position.cycle_number
        )
        return CapDecision(
            allowed=False,
            tracked=True,
            reason=rules.renewal_required_message,
            cap_status=position.cap_status,
            earnings_total=(
                tracker.eligible_earnings_total if tracker else Decimal("0")
            ),
            cap_amount=position.cap_amount,
            cycle_number=position.cycle_number,
            position_id=position.id,
        )

    async def recalculate(self, account_id: int) -> CapDecision:
        """
        Recompute the current cycle's cap from the snapshot.

        Updates the position and tracker cap amounts. A tracker whose total
        already meets the new cap is marked CAP_REACHED; a reached cap is
        never reverted here, only renewal does that.

        Args:
            account_id: Account ID

        Returns:
            CapDecision describing the recalculated state

        Raises:
            NotFoundError: If the account or its active position is missing
        """
        account = await self.account_repo.get_by_id(account_id)
        if account is None:
            raise NotFoundError(f"Account {account_id} not found")

        position = await self.position_repo.get_active_for_update(account_id)
        if position is None:
            raise NotFoundError(f"Account {account_id} has no active position")

        terms = self._terms_for(account, position)
        position.cap_multiplier = terms.multiplier
        position.cap_amount = terms.cap_amount

        tracker = await self.tracker_repo.get_or_create_for_update(
            account_id=account_id,
            cycle_number=position.cycle_number,
            cap_amount=terms.cap_amount,
            position_id=position.id,
        )
        tracker.cap_amount = terms.cap_amount

        reached = tracker.eligible_earnings_total >= tracker.cap_amount
        newly_reached = False
        if reached:
            reached_at = utc_now()
            if tracker.status == CapStatus.ACTIVE:
                tracker.status = CapStatus.CAP_REACHED.value
                tracker.cap_reached_at = reached_at
                newly_reached = True
            # Also covers a tracker already reached while auto-marking was off
            if position.cap_status == CapStatus.ACTIVE:
                position.cap_status = CapStatus.CAP_REACHED.value
                position.cap_reached_at = reached_at
                newly_reached = True

        await self.session.flush()

        self.logger.info(
            "Cap recalculated",
            extra={
                "account_id": account_id,
                "cycle_number": position.cycle_number,
                "cap_amount": str(terms.cap_amount),
                "newly_reached": newly_reached,
            },
        )

        return CapDecision(
            allowed=position.cap_status == CapStatus.ACTIVE,
            tracked=True,
            cap_status=position.cap_status,
            earnings_total=tracker.eligible_earnings_total,
            cap_amount=tracker.cap_amount,
            remaining=tracker.remaining,
            cycle_number=position.cycle_number,
            position_id=position.id,
            newly_reached=newly_reached,
        )

    def _referral_counts(self, metadata: EntryMetadata) -> bool:
        """Entry metadata overrides the global referral setting."""
        if metadata.counts_toward_cap is not None:
            return metadata.counts_toward_cap
        return self.snapshot.referral.referral_income_counts_toward_cap

    def _terms_for(self, account: Account, position: Position):
        return compute_cap_terms(
            position.base_amount,
            ProgramType(account.program_type),
            self.snapshot.program,
        )
