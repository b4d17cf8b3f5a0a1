"""
Tests for WeeklyPayoutProcessor.
"""

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from compensation.models import PayoutRequest
from compensation.models.enums import IncomeType, PayoutStatus
from compensation.services.cap.cap_evaluator import CapDecision
from compensation.services.cycle.weekly_payout_processor import WeeklyPayoutProcessor


MONDAY = date(2025, 1, 6)


def build_processor(session, snapshot, wallet):
    processor = WeeklyPayoutProcessor(session, snapshot)
    processor.ledger = MagicMock()
    processor.ledger.cap_evaluator.check_withdrawal = AsyncMock(
        return_value=CapDecision.untracked("withdrawals_not_blocked")
    )
    processor.ledger.debit = AsyncMock(return_value=MagicMock(ledger_entry_id=8))
    processor.wallet_repo = AsyncMock()
    processor.wallet_repo.get_payout_candidates.return_value = [wallet]
    processor.wallet_repo.get_for_update.return_value = wallet
    processor.payout_repo = AsyncMock()
    processor.payout_repo.get_for_week.return_value = None
    processor.payout_repo.create.side_effect = lambda **kwargs: PayoutRequest(id=1, **kwargs)
    processor.audit_repo = AsyncMock()
    return processor


class TestWeeklyPayout:
    """Test payout request creation."""

    @pytest.mark.asyncio
    async def test_creates_payout_request(self, mock_session, snapshot, make_wallet):
        """Test gross, 10% charges and net."""
        wallet = make_wallet(available=Decimal("1000"))
        processor = build_processor(mock_session, snapshot, wallet)

        summary = await processor.run(MONDAY)

        assert summary.processed_count == 1
        assert summary.total_amount == Decimal("1000")

        args = processor.ledger.debit.await_args
        assert args.args == (1, Decimal("1000"), IncomeType.PAYOUT_REQUEST)
        assert args.kwargs["idempotency_key"] == "payout:1:2025-W02"

        payout = processor.payout_repo.create.await_args.kwargs
        assert payout["admin_charges"] == Decimal("100.00")
        assert payout["net_amount"] == Decimal("900.00")
        assert payout["status"] == PayoutStatus.PENDING
        assert wallet.pending_balance == Decimal("900.00")

    @pytest.mark.asyncio
    async def test_already_requested(self, mock_session, snapshot, make_wallet):
        """Test one request per account and week."""
        processor = build_processor(
            mock_session, snapshot, make_wallet(available=Decimal("1000"))
        )
        processor.payout_repo.get_for_week.return_value = MagicMock()

        summary = await processor.run(MONDAY)

        assert summary.skip_reasons["already_requested"] == 1
        processor.ledger.debit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_not_release_day(self, mock_session, snapshot, make_wallet):
        """Test the batch only runs on the release weekday."""
        processor = build_processor(
            mock_session, snapshot, make_wallet(available=Decimal("1000"))
        )

        summary = await processor.run(date(2025, 1, 7))

        assert summary.skipped == "not_release_day"
        processor.wallet_repo.get_payout_candidates.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_settle_payout(self, mock_session, snapshot, make_wallet):
        """Test settlement releases the net amount from pending."""
        wallet = make_wallet(pending=Decimal("900"))
        processor = build_processor(mock_session, snapshot, wallet)
        payout = PayoutRequest(
            id=1,
            account_id=1,
            week_key="2025-W02",
            gross_amount=Decimal("1000"),
            admin_charges=Decimal("100"),
            admin_charges_percent=Decimal("10"),
            net_amount=Decimal("900"),
            status=PayoutStatus.PENDING.value,
        )
        processor.payout_repo.get_for_update.return_value = payout

        settled = await processor.settle_payout(1, actor_id=99)

        assert settled.status == PayoutStatus.PAID
        assert settled.paid_at is not None
        assert wallet.pending_balance == Decimal("0")
        mock_session.commit.assert_awaited_once()
