"""
Account repository.

Data access layer for Account model and the upline pointer graph.
"""

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from compensation.models.account import Account
from compensation.repositories.base import BaseRepository


class AccountRepository(BaseRepository[Account]):
    """Account repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize account repository."""
        super().__init__(Account, session)

    async def get_for_update(self, account_id: int) -> Account | None:
        """
        Get account with a row lock (SELECT ... FOR UPDATE).

        Args:
            account_id: Account ID

        Returns:
            Locked account or None
        """
        stmt = select(Account).where(Account.id == account_id).with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_upline_chain(
        self, account_id: int, depth: int
    ) -> list[Account]:
        """
        Walk upline pointers starting above ``account_id``.

        Each hop is a primary key lookup served from the identity map when
        the account was already loaded in this unit of work. The walk stops
        at the root, at ``depth`` ancestors, or when a pointer revisits an
        account (a corrupted, cyclic chain is logged, never followed).

        Args:
            account_id: Account whose ancestors are wanted
            depth: Maximum number of ancestors

        Returns:
            Ancestors ordered nearest first
        """
        chain: list[Account] = []
        visited = {account_id}

        current = await self.get_by_id(account_id)
        while current is not None and current.upline_id and len(chain) < depth:
            if current.upline_id in visited:
                logger.error(
                    "Upline cycle detected, stopping walk",
                    extra={
                        "account_id": account_id,
                        "repeated_id": current.upline_id,
                        "chain_ids": [a.id for a in chain],
                    },
                )
                break
            visited.add(current.upline_id)

            upline = await self.get_by_id(current.upline_id)
            if upline is None:
                logger.warning(
                    "Upline pointer to missing account",
                    extra={"account_id": current.id, "upline_id": current.upline_id},
                )
                break
            chain.append(upline)
            current = upline

        return chain

    async def increment_direct_referral_count(self, account_id: int) -> None:
        """
        Atomically increment an account's direct referral count.

        Args:
            account_id: Upline account ID
        """
        stmt = (
            update(Account)
            .where(Account.id == account_id)
            .values(direct_referral_count=Account.direct_referral_count + 1)
            .execution_options(synchronize_session="fetch")
        )
        await self.session.execute(stmt)

    async def mark_referral_counted(self, account_id: int) -> bool:
        """
        Flag an account as counted by its upline, exactly once.

        Args:
            account_id: Referred account ID

        Returns:
            True if this call set the flag, False if it was already set
        """
        stmt = (
            update(Account)
            .where(Account.id == account_id, Account.referral_counted.is_(False))
            .values(referral_counted=True)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0
