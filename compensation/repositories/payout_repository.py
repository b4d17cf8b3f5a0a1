"""
Payout repository.

Data access layer for PayoutRequest model.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from compensation.models.payout_request import PayoutRequest
from compensation.repositories.base import BaseRepository


class PayoutRepository(BaseRepository[PayoutRequest]):
    """Payout request repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize payout repository."""
        super().__init__(PayoutRequest, session)

    async def get_for_week(
        self, account_id: int, week_key: str
    ) -> PayoutRequest | None:
        """
        Get the payout request of an account for one ISO week.

        Args:
            account_id: Account ID
            week_key: ISO week key ("2025-W02")

        Returns:
            Payout request or None
        """
        return await self.get_by(account_id=account_id, week_key=week_key)

    async def get_for_update(self, payout_id: int) -> PayoutRequest | None:
        """
        Get payout request by ID with a row lock.

        Args:
            payout_id: Payout request ID

        Returns:
            Locked payout request or None
        """
        stmt = (
            select(PayoutRequest)
            .where(PayoutRequest.id == payout_id)
            .with_for_update()
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_account_payouts(self, account_id: int) -> list[PayoutRequest]:
        """
        Get every payout request of an account, oldest first.

        Args:
            account_id: Account ID

        Returns:
            Payout requests in creation order
        """
        stmt = (
            select(PayoutRequest)
            .where(PayoutRequest.account_id == account_id)
            .order_by(PayoutRequest.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
