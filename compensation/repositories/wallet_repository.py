"""
Wallet repository.

Data access layer for Wallet model.
"""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from compensation.models.wallet import Wallet
from compensation.repositories.base import BaseRepository


class WalletRepository(BaseRepository[Wallet]):
    """Wallet repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize wallet repository."""
        super().__init__(Wallet, session)

    async def get_by_account(self, account_id: int) -> Wallet | None:
        """
        Get wallet of an account without locking.

        Args:
            account_id: Account ID

        Returns:
            Wallet or None
        """
        return await self.get_by(account_id=account_id)

    async def get_for_update(self, account_id: int) -> Wallet | None:
        """
        Get wallet of an account with a row lock.

        Args:
            account_id: Account ID

        Returns:
            Locked wallet or None
        """
        stmt = select(Wallet).where(Wallet.account_id == account_id).with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_create_for_update(self, account_id: int) -> Wallet:
        """
        Get the locked wallet of an account, creating an empty one if missing.

        Args:
            account_id: Account ID

        Returns:
            Locked wallet
        """
        wallet = await self.get_for_update(account_id)
        if wallet is not None:
            return wallet

        try:
            async with self.session.begin_nested():
                wallet = Wallet(
                    account_id=account_id,
                    available_balance=Decimal("0"),
                    pending_balance=Decimal("0"),
                    lifetime_earned=Decimal("0"),
                    lifetime_withdrawn=Decimal("0"),
                )
                self.session.add(wallet)
                await self.session.flush()
        except IntegrityError:
            wallet = await self.get_for_update(account_id)
            if wallet is None:
                raise
        return wallet

    async def get_payout_candidates(
        self, min_amount: Decimal = Decimal("0")
    ) -> list[Wallet]:
        """
        Get wallets with a positive available balance.

        Args:
            min_amount: Lower bound (inclusive) when positive

        Returns:
            Wallets ordered by account
        """
        stmt = (
            select(Wallet)
            .where(Wallet.available_balance > 0)
            .order_by(Wallet.account_id)
        )
        if min_amount > 0:
            stmt = stmt.where(Wallet.available_balance >= min_amount)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_all(self) -> list[Wallet]:
        """Get every wallet ordered by account."""
        stmt = select(Wallet).order_by(Wallet.account_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
