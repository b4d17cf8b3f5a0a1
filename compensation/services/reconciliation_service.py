"""
Reconciliation service.

Rebuilds wallet balances from the ledger and compares them with the
stored projection.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from compensation.models.enums import OUTBOUND_TYPES, EntryStatus, IncomeType, PayoutStatus
from compensation.models.ledger_entry import LedgerEntry
from compensation.models.payout_request import PayoutRequest
from compensation.models.wallet import Wallet
from compensation.repositories.ledger_repository import LedgerRepository
from compensation.repositories.payout_repository import PayoutRepository
from compensation.repositories.wallet_repository import WalletRepository
from compensation.services.base_service import BaseService


@dataclass(frozen=True)
class BalanceProjection:
    """Wallet balances, stored or rebuilt."""

    available_balance: Decimal = Decimal("0")
    pending_balance: Decimal = Decimal("0")
    lifetime_earned: Decimal = Decimal("0")
    lifetime_withdrawn: Decimal = Decimal("0")

    @classmethod
    def of(cls, wallet: Wallet | None) -> "BalanceProjection":
        if wallet is None:
            return cls()
        return cls(
            available_balance=wallet.available_balance,
            pending_balance=wallet.pending_balance,
            lifetime_earned=wallet.lifetime_earned,
            lifetime_withdrawn=wallet.lifetime_withdrawn,
        )


@dataclass
class ReconciliationReport:
    """Comparison of one account's wallet with its ledger."""

    account_id: int
    expected: BalanceProjection
    actual: BalanceProjection
    differences: dict[str, Decimal] = field(default_factory=dict)

    @property
    def is_consistent(self) -> bool:
        return not self.differences


def reconstruct_balance(
    entries: Iterable[LedgerEntry],
    payouts: Iterable[PayoutRequest] = (),
) -> BalanceProjection:
    """
    Fold a ledger into wallet balances.

    available: sum of APPROVED/COMPLETED signed amounts.
    pending: PENDING credits not yet released, plus net amounts of payout
    requests not yet settled.
    lifetime_earned: positive settled amounts.
    lifetime_withdrawn: outbound settled debits.

    Args:
        entries: Entries of one account, in any order
        payouts: Payout requests of the same account

    Returns:
        BalanceProjection
    """
    available = Decimal("0")
    pending = Decimal("0")
    earned = Decimal("0")
    withdrawn = Decimal("0")

    for entry in sorted(entries, key=lambda e: e.id):
        status = entry.status
        if status in (EntryStatus.APPROVED, EntryStatus.COMPLETED):
            available += entry.amount
            if entry.amount > 0:
                earned += entry.amount
                if (entry.details or {}).get("released_entry_id") is not None:
                    pending -= entry.amount
            elif IncomeType.parse(entry.type) in OUTBOUND_TYPES:
                withdrawn += -entry.amount
        elif status == EntryStatus.PENDING and entry.amount > 0:
            pending += entry.amount

    for payout in payouts:
        if payout.status == PayoutStatus.PENDING:
            pending += payout.net_amount

    return BalanceProjection(
        available_balance=available,
        pending_balance=pending,
        lifetime_earned=earned,
        lifetime_withdrawn=withdrawn,
    )


class ReconciliationService(BaseService):
    """Reconciliation service. Read-only."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize reconciliation service.

        Args:
            session: Async database session
        """
        super().__init__(session)
        self.ledger_repo = LedgerRepository(session)
        self.wallet_repo = WalletRepository(session)
        self.payout_repo = PayoutRepository(session)

    async def verify_account(self, account_id: int) -> ReconciliationReport:
        """
        Rebuild one account's balances and compare with its wallet.

        Args:
            account_id: Account ID

        Returns:
            ReconciliationReport
        """
        entries = await self.ledger_repo.get_account_entries(account_id)
        payouts = await self.payout_repo.get_account_payouts(account_id)
        wallet = await self.wallet_repo.get_by_account(account_id)

        expected = reconstruct_balance(entries, payouts)
        actual = BalanceProjection.of(wallet)

        differences = {
            name: getattr(actual, name) - getattr(expected, name)
            for name in (
                "available_balance",
                "pending_balance",
                "lifetime_earned",
                "lifetime_withdrawn",
            )
            if getattr(actual, name) != getattr(expected, name)
        }

        report = ReconciliationReport(
            account_id=account_id,
            expected=expected,
            actual=actual,
            differences=differences,
        )

        if not report.is_consistent:
            self.logger.warning(
                "Wallet does not match ledger",
                extra={
                    "account_id": account_id,
                    "differences": {k: str(v) for k, v in differences.items()},
                },
            )
        return report

    async def verify_all(self) -> list[ReconciliationReport]:
        """
        Verify every wallet.

        Returns:
            Reports of inconsistent accounts only
        """
        wallets = await self.wallet_repo.get_all()
        inconsistent = []
        for wallet in wallets:
            report = await self.verify_account(wallet.account_id)
            if not report.is_consistent:
                inconsistent.append(report)

        self.logger.info(
            "Reconciliation complete",
            extra={"wallets": len(wallets), "inconsistent": len(inconsistent)},
        )
        return inconsistent
