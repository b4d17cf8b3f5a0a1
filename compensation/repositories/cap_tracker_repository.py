"""
CapTracker repository.

Data access layer for CapTracker model.
"""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from compensation.models.cap_tracker import CapTracker
from compensation.models.enums import CapStatus
from compensation.repositories.base import BaseRepository


class CapTrackerRepository(BaseRepository[CapTracker]):
    """CapTracker repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize cap tracker repository."""
        super().__init__(CapTracker, session)

    async def get_for_update(
        self, account_id: int, cycle_number: int
    ) -> CapTracker | None:
        """
        Get the tracker of one cycle with a row lock.

        Args:
            account_id: Account ID
            cycle_number: Cycle number

        Returns:
            Locked tracker or None
        """
        stmt = (
            select(CapTracker)
            .where(
                CapTracker.account_id == account_id,
                CapTracker.cycle_number == cycle_number,
            )
            .with_for_update()
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_create_for_update(
        self,
        account_id: int,
        cycle_number: int,
        cap_amount: Decimal,
        position_id: int | None = None,
    ) -> CapTracker:
        """
        Get the locked tracker of one cycle, creating it at zero if missing.

        Creation runs in a SAVEPOINT: if a concurrent unit of work created
        the same (account, cycle) row first, the unique constraint fires and
        the existing row is locked instead.

        Args:
            account_id: Account ID
            cycle_number: Cycle number
            cap_amount: Cap to seed a new tracker with
            position_id: Owning position

        Returns:
            Locked tracker
        """
        tracker = await self.get_for_update(account_id, cycle_number)
        if tracker is not None:
            return tracker

        try:
            async with self.session.begin_nested():
                tracker = CapTracker(
                    account_id=account_id,
                    position_id=position_id,
                    cycle_number=cycle_number,
                    cap_amount=cap_amount,
                    eligible_earnings_total=Decimal("0"),
                    status=CapStatus.ACTIVE.value,
                )
                self.session.add(tracker)
                await self.session.flush()
        except IntegrityError:
            tracker = await self.get_for_update(account_id, cycle_number)
            if tracker is None:
                raise
        return tracker
