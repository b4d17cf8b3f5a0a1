"""
Ledger repository.

Data access layer for the append-only LedgerEntry sequence.
"""

from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from compensation.models.enums import EntryStatus, IncomeType
from compensation.models.ledger_entry import LedgerEntry
from compensation.repositories.base import BaseRepository
from compensation.utils.datetime_utils import start_of_day


REFERRAL_TYPES = (IncomeType.REFERRAL_DIRECT.value, IncomeType.REFERRAL_LEVEL.value)

# Statuses that count as "already paid" for idempotency. PENDING is included
# so a credit waiting for approval is not paid a second time.
NON_REJECTED_STATUSES = (
    EntryStatus.PENDING.value,
    EntryStatus.APPROVED.value,
    EntryStatus.COMPLETED.value,
)


class LedgerRepository(BaseRepository[LedgerEntry]):
    """
    Ledger repository.

    Entries are only ever inserted. Services never call update() on them.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize ledger repository."""
        super().__init__(LedgerEntry, session)

    async def get_by_idempotency_key(self, key: str) -> LedgerEntry | None:
        """
        Get entry by idempotency key.

        Args:
            key: Idempotency key

        Returns:
            Entry or None
        """
        return await self.get_by(idempotency_key=key)

    async def exists_referral_entry(
        self,
        account_id: int,
        source_account_id: int,
        level: int | None = None,
    ) -> bool:
        """
        Check if a referral credit from a source activation already exists.

        Args:
            account_id: Receiving (upline) account
            source_account_id: Activated account that generated the credit
            level: Restrict to one multi-level depth; None means any
                referral entry (direct or level)

        Returns:
            True if a non-rejected entry exists
        """
        stmt = (
            select(func.count())
            .select_from(LedgerEntry)
            .where(
                LedgerEntry.account_id == account_id,
                LedgerEntry.source_account_id == source_account_id,
                LedgerEntry.status.in_(NON_REJECTED_STATUSES),
            )
        )
        if level is None:
            stmt = stmt.where(LedgerEntry.type.in_(REFERRAL_TYPES))
        else:
            stmt = stmt.where(
                LedgerEntry.type == IncomeType.REFERRAL_LEVEL.value,
                LedgerEntry.level == level,
            )

        result = await self.session.execute(stmt)
        return (result.scalar() or 0) > 0

    async def sum_referral_income_on(
        self, account_id: int, day: date
    ) -> Decimal:
        """
        Sum referral credits received by an account on one UTC day.

        Args:
            account_id: Receiving account
            day: Calendar day (UTC)

        Returns:
            Total amount
        """
        start = start_of_day(day)
        stmt = select(func.coalesce(func.sum(LedgerEntry.amount), 0)).where(
            LedgerEntry.account_id == account_id,
            LedgerEntry.type.in_(REFERRAL_TYPES),
            LedgerEntry.status.in_(NON_REJECTED_STATUSES),
            LedgerEntry.created_at >= start,
            LedgerEntry.created_at < start + timedelta(days=1),
        )
        result = await self.session.execute(stmt)
        return Decimal(result.scalar() or 0)

    async def sum_referral_income_from(
        self, account_id: int, source_account_id: int
    ) -> Decimal:
        """
        Sum referral credits an account received from one referred account.

        Args:
            account_id: Receiving account
            source_account_id: Referred account

        Returns:
            Total amount
        """
        stmt = select(func.coalesce(func.sum(LedgerEntry.amount), 0)).where(
            LedgerEntry.account_id == account_id,
            LedgerEntry.source_account_id == source_account_id,
            LedgerEntry.type.in_(REFERRAL_TYPES),
            LedgerEntry.status.in_(NON_REJECTED_STATUSES),
        )
        result = await self.session.execute(stmt)
        return Decimal(result.scalar() or 0)

    async def get_account_entries(
        self,
        account_id: int,
        entry_type: IncomeType | None = None,
        limit: int | None = None,
    ) -> list[LedgerEntry]:
        """
        Get entries of an account in creation order.

        Args:
            account_id: Account ID
            entry_type: Optional type filter
            limit: Max number of entries

        Returns:
            Entries ordered by id
        """
        stmt = (
            select(LedgerEntry)
            .where(LedgerEntry.account_id == account_id)
            .order_by(LedgerEntry.id)
        )
        if entry_type is not None:
            stmt = stmt.where(LedgerEntry.type == entry_type.value)
        if limit:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def has_approval_for(self, pending_entry_id: int) -> bool:
        """
        Check if a PENDING entry was already released.

        Args:
            pending_entry_id: ID of the PENDING entry

        Returns:
            True if an approving entry references it
        """
        stmt = (
            select(func.count())
            .select_from(LedgerEntry)
            .where(
                LedgerEntry.idempotency_key == f"release:{pending_entry_id}"
            )
        )
        result = await self.session.execute(stmt)
        return (result.scalar() or 0) > 0
