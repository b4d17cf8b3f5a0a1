"""
Tests for balance reconstruction and wallet verification.
"""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from compensation.models import LedgerEntry, PayoutRequest
from compensation.models.enums import EntryStatus, IncomeType, PayoutStatus
from compensation.services.reconciliation_service import (
    ReconciliationService,
    reconstruct_balance,
)


def entry(entry_id, amount, income_type, status, details=None):
    return LedgerEntry(
        id=entry_id,
        account_id=1,
        type=income_type.value,
        amount=Decimal(amount),
        status=status.value,
        details=details or {},
    )


@pytest.fixture
def ledger():
    """
    One account's ledger:
    yield 1000, referral 5000 (pending, then released), a rejected credit,
    an activation payment of 500 and a weekly payout of 2000.
    """
    return [
        entry(1, "1000", IncomeType.DAILY_YIELD, EntryStatus.APPROVED),
        entry(2, "5000", IncomeType.REFERRAL_DIRECT, EntryStatus.PENDING),
        entry(3, "300", IncomeType.DAILY_YIELD, EntryStatus.REJECTED),
        entry(
            4, "5000", IncomeType.REFERRAL_DIRECT, EntryStatus.APPROVED,
            {"released_entry_id": 2},
        ),
        entry(5, "-500", IncomeType.ACTIVATION_PAID, EntryStatus.COMPLETED),
        entry(6, "-2000", IncomeType.PAYOUT_REQUEST, EntryStatus.COMPLETED),
    ]


class TestReconstructBalance:
    """Test the reference ledger fold."""

    def test_fold(self, ledger):
        """Test every balance of the projection."""
        payout = PayoutRequest(
            account_id=1,
            week_key="2025-W02",
            gross_amount=Decimal("2000"),
            admin_charges=Decimal("200"),
            admin_charges_percent=Decimal("10"),
            net_amount=Decimal("1800"),
            status=PayoutStatus.PENDING.value,
        )

        projection = reconstruct_balance(ledger, [payout])

        assert projection.available_balance == Decimal("3500")
        assert projection.pending_balance == Decimal("1800")
        assert projection.lifetime_earned == Decimal("6000")
        assert projection.lifetime_withdrawn == Decimal("2000")

    def test_unreleased_pending_credit(self):
        """Test a pending credit stays out of available balance."""
        projection = reconstruct_balance(
            [entry(1, "250", IncomeType.REFERRAL_LEVEL, EntryStatus.PENDING)]
        )
        assert projection.available_balance == Decimal("0")
        assert projection.pending_balance == Decimal("250")
        assert projection.lifetime_earned == Decimal("0")

    def test_empty_ledger(self):
        """Test an empty ledger folds to zeros."""
        projection = reconstruct_balance([])
        assert projection.available_balance == Decimal("0")
        assert projection.pending_balance == Decimal("0")


class TestReconciliationService:
    """Test wallet verification."""

    @pytest.mark.asyncio
    async def test_consistent_wallet(self, mock_session, make_wallet):
        """Test a wallet that matches its ledger."""
        wallet = make_wallet(available=Decimal("1000"))
        wallet.lifetime_earned = Decimal("1000")

        service = ReconciliationService(mock_session)
        service.ledger_repo = AsyncMock()
        service.ledger_repo.get_account_entries.return_value = [
            entry(1, "1000", IncomeType.DAILY_YIELD, EntryStatus.APPROVED)
        ]
        service.payout_repo = AsyncMock()
        service.payout_repo.get_account_payouts.return_value = []
        service.wallet_repo = AsyncMock()
        service.wallet_repo.get_by_account.return_value = wallet

        report = await service.verify_account(1)

        assert report.is_consistent is True

    @pytest.mark.asyncio
    async def test_drifted_wallet(self, mock_session, make_wallet):
        """Test differences are reported as actual minus expected."""
        wallet = make_wallet(available=Decimal("1100"))
        wallet.lifetime_earned = Decimal("1000")

        service = ReconciliationService(mock_session)
        service.ledger_repo = AsyncMock()
        service.ledger_repo.get_account_entries.return_value = [
            entry(1, "1000", IncomeType.DAILY_YIELD, EntryStatus.APPROVED)
        ]
        service.payout_repo = AsyncMock()
        service.payout_repo.get_account_payouts.return_value = []
        service.wallet_repo = AsyncMock()
        service.wallet_repo.get_by_account.return_value = wallet

        report = await service.verify_account(1)

        assert report.is_consistent is False
        assert report.differences == {"available_balance": Decimal("100")}
