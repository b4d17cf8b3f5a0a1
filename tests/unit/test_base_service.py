"""
Tests for the unit-of-work decorator and batch summaries.
"""

from datetime import date
from decimal import Decimal

import pytest

from compensation.services.base_service import BaseService, transaction
from compensation.services.cycle.batch_summary import BatchSummary
from compensation.utils.exceptions import CapExceeded, ValidationError


class DummyService(BaseService):
    """Service whose work is injected by the test."""

    @transaction
    async def run(self, outcome):
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class TestTransactionDecorator:
    """Test commit/rollback behavior."""

    @pytest.mark.asyncio
    async def test_commits_on_success(self, mock_session):
        """Test success commits."""
        result = await DummyService(mock_session).run("ok")

        assert result == "ok"
        mock_session.commit.assert_awaited_once()
        mock_session.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rolls_back_on_error(self, mock_session):
        """Test errors roll back and propagate."""
        with pytest.raises(ValidationError):
            await DummyService(mock_session).run(ValidationError("bad"))

        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_commits_rejection_record_on_cap_exceeded(self, mock_session):
        """Test the REJECTED entry survives a cap refusal."""
        error = CapExceeded(
            reason="cap",
            cap_status="CAP_REACHED",
            earnings_total=Decimal("100000"),
            cap_amount=Decimal("100000"),
            ledger_entry_id=42,
        )

        with pytest.raises(CapExceeded) as exc_info:
            await DummyService(mock_session).run(error)

        assert exc_info.value.ledger_entry_id == 42
        mock_session.commit.assert_awaited_once()
        mock_session.rollback.assert_not_awaited()


class TestBatchSummary:
    """Test batch summary bookkeeping."""

    def test_to_dict(self):
        """Test counters and serialization."""
        summary = BatchSummary(business_date=date(2025, 1, 6))
        summary.add_processed(Decimal("150.00"))
        summary.add_processed(Decimal("1000.00"))
        summary.add_skip("already_processed")
        summary.add_skip("already_processed")
        summary.add_failure(9, RuntimeError("boom"))

        data = summary.to_dict()

        assert data["business_date"] == "2025-01-06"
        assert data["processed_count"] == 2
        assert data["total_amount"] == "1150.00"
        assert data["skip_reasons"] == {"already_processed": 2}
        assert data["failure_count"] == 1
        assert data["skipped"] is None
