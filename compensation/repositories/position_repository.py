"""
Position repository.

Data access layer for Position model.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from compensation.models.account import Account
from compensation.models.enums import PositionStatus, ProgramType
from compensation.models.position import Position
from compensation.repositories.base import BaseRepository


class PositionRepository(BaseRepository[Position]):
    """Position repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize position repository."""
        super().__init__(Position, session)

    async def get_active(self, account_id: int) -> Position | None:
        """
        Get the account's ACTIVE position without locking.

        Args:
            account_id: Account ID

        Returns:
            Active position or None
        """
        return await self.get_by(
            account_id=account_id, status=PositionStatus.ACTIVE.value
        )

    async def get_active_for_update(self, account_id: int) -> Position | None:
        """
        Get the account's ACTIVE position with a row lock.

        Position is the first row locked by every credit, renewal and cap
        recalculation for an account, so concurrent cycle transitions and
        cap evaluations on the same account serialize here.

        A renewal closes the locked row and inserts its successor. A
        statement that waited on the closed row finds nothing on recheck,
        so it is run once more to pick up the successor.

        Args:
            account_id: Account ID

        Returns:
            Locked active position or None
        """
        stmt = (
            select(Position)
            .where(
                Position.account_id == account_id,
                Position.status == PositionStatus.ACTIVE.value,
            )
            .with_for_update()
        )
        for _ in range(2):
            result = await self.session.execute(stmt)
            position = result.scalar_one_or_none()
            if position is not None:
                return position
        return None

    async def get_for_update(self, position_id: int) -> Position | None:
        """
        Get position by ID with a row lock.

        Args:
            position_id: Position ID

        Returns:
            Locked position or None
        """
        stmt = select(Position).where(Position.id == position_id).with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_yield_candidates(
        self, include_leaders: bool = False
    ) -> list[Position]:
        """
        Get ACTIVE positions eligible for the daily yield batch.

        Args:
            include_leaders: Include positions owned by LEADER accounts

        Returns:
            Positions ordered by id
        """
        stmt = (
            select(Position)
            .join(Account, Account.id == Position.account_id)
            .where(Position.status == PositionStatus.ACTIVE.value)
            .order_by(Position.id)
        )
        if not include_leaders:
            stmt = stmt.where(Account.program_type != ProgramType.LEADER.value)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())
