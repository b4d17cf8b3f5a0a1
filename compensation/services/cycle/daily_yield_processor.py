"""
Daily yield processor.

Credits the daily yield of every active position once per working day.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from compensation.config.settings import settings
from compensation.config.snapshot import ConfigurationSnapshot
from compensation.models.enums import IncomeType, PositionStatus
from compensation.repositories.position_repository import PositionRepository
from compensation.services.base_service import BaseService, log_operation
from compensation.services.cycle.batch_summary import BatchSummary
from compensation.services.cycle.yield_calculator import (
    daily_yield_amount,
    has_days_left,
    select_tier,
)
from compensation.services.entry_metadata import EntryMetadata
from compensation.services.ledger.ledger_service import LedgerService
from compensation.utils.datetime_utils import is_working_day
from compensation.utils.exceptions import CapExceeded, DuplicateEntry


class DailyYieldProcessor(BaseService):
    """
    Daily yield batch.

    Exactly-once per (position, day) rests on two markers written in the
    same SAVEPOINT as the credit: ``last_yield_date`` on the position,
    bumped together with ``working_days_processed`` before posting, and the
    ledger idempotency key ``daily_yield:{position}:{date}``. A re-run of
    the same tick finds the marker and skips. Each position is committed
    on its own, so an interrupted batch resumes where it stopped.
    """

    def __init__(
        self, session: AsyncSession, snapshot: ConfigurationSnapshot
    ) -> None:
        """
        Initialize daily yield processor.

        Args:
            session: Async database session
            snapshot: Configuration loaded once for this tick
        """
        super().__init__(session)
        self.snapshot = snapshot
        self.position_repo = PositionRepository(session)
        self.ledger = LedgerService(session, snapshot)

    @log_operation
    async def run(self, business_date: date) -> BatchSummary:
        """
        Process one business day.

        Args:
            business_date: Day being credited

        Returns:
            BatchSummary
        """
        summary = BatchSummary(business_date=business_date)

        if not is_working_day(business_date):
            summary.skipped = "non_working_day"
            self.logger.info(
                "Daily yield skipped: not a working day",
                extra={"business_date": business_date.isoformat()},
            )
            return summary

        if settings.emergency_stop_yield:
            summary.skipped = "emergency_stop"
            self.logger.warning("Daily yield skipped: emergency stop")
            return summary

        positions = await self.position_repo.get_yield_candidates(
            include_leaders=self.snapshot.yield_rules.leader_yield_enabled
        )
        position_ids = [position.id for position in positions]

        for position_id in position_ids:
            try:
                async with self.session.begin_nested():
                    outcome = await self._process_position(
                        position_id, business_date
                    )
                await self.session.commit()
            except DuplicateEntry:
                await self.session.rollback()
                summary.add_skip("already_processed")
                continue
            except Exception as e:
                await self.session.rollback()
                summary.add_failure(position_id, e)
                self.logger.error(
                    "Daily yield failed for position",
                    extra={"position_id": position_id, "error": str(e)},
                    exc_info=True,
                )
                continue

            if isinstance(outcome, Decimal):
                summary.add_processed(outcome)
            else:
                summary.add_skip(outcome)

        self.logger.info(
            "Daily yield batch complete",
            extra={**summary.to_dict(), "config_version": self.snapshot.version},
        )
        return summary

    async def _process_position(
        self, position_id: int, business_date: date
    ) -> Decimal | str:
        """
        Credit one position.

        Returns:
            Credited amount, or a skip reason
        """
        position = await self.position_repo.get_for_update(position_id)
        if position is None or position.status != PositionStatus.ACTIVE:
            return "inactive"

        if position.last_yield_date is not None and position.last_yield_date >= business_date:
            return "already_processed"

        cap_rules = self.snapshot.cap
        if (
            cap_rules.enable_id_renewal_rule
            and cap_rules.cap_action.stops_earnings
            and position.is_capped
        ):
            return "cap_reached"

        tier = select_tier(position.base_amount, self.snapshot.yield_rules)
        if not has_days_left(position.working_days_processed, tier):
            return "max_working_days"

        amount = daily_yield_amount(position.base_amount, tier)
        if amount <= 0:
            return "zero_amount"

        # Counters first: they are the re-run marker for this tick
        position.working_days_processed += 1
        position.cumulative_yield += amount
        position.last_yield_date = business_date
        await self.session.flush()

        try:
            await self.ledger.post(
                position.account_id,
                amount,
                IncomeType.DAILY_YIELD,
                description=f"Daily yield {business_date.isoformat()}",
                metadata=EntryMetadata(
                    position_id=position.id,
                    extra={
                        "business_date": business_date.isoformat(),
                        "daily_percent": str(tier.daily_percent),
                        "working_day": position.working_days_processed,
                    },
                ),
                idempotency_key=f"daily_yield:{position.id}:{business_date.isoformat()}",
            )
        except CapExceeded:
            # Day is consumed; the REJECTED entry stays, the yield was not paid
            position.cumulative_yield -= amount
            await self.session.flush()
            return "cap_exceeded"

        return amount
