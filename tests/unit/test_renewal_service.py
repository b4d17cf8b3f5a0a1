"""
Tests for RenewalService.

Tests cover:
- Cycle transition with a fresh tracker
- Refusals (not capped, disabled payer role, plan downgrade)
- Renewal requests
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from compensation.config.snapshot import ConfigurationSnapshot, Package
from compensation.models.enums import (
    CapStatus,
    IncomeType,
    PayerRole,
    PaymentMethod,
    PositionStatus,
)
from compensation.models.position import Position
from compensation.services.renewal.renewal_service import RenewalService
from compensation.utils.exceptions import PermissionDenied, ValidationError


def build_service(session, snapshot, account, position):
    service = RenewalService(session, snapshot)
    service.ledger = AsyncMock()
    service.ledger.debit.return_value = MagicMock(ledger_entry_id=77)
    service.account_repo = AsyncMock()
    service.account_repo.get_by_id.return_value = account
    service.position_repo = AsyncMock()
    service.position_repo.get_active_for_update.return_value = position
    service.position_repo.create.side_effect = lambda **kwargs: Position(id=6, **kwargs)
    service.tracker_repo = AsyncMock()
    service.renewal_repo = AsyncMock()
    service.renewal_repo.create.return_value = MagicMock(id=3)
    service.audit_repo = AsyncMock()
    return service


class TestRenew:
    """Test renewals."""

    @pytest.mark.asyncio
    async def test_renews_into_next_cycle(
        self, mock_session, cap_snapshot, make_account, make_position
    ):
        """Test cycle 1 -> 2 with a new cap and an empty tracker."""
        position = make_position(
            cap_status=CapStatus.CAP_REACHED,
            working_days_processed=40,
            cumulative_yield=Decimal("40000"),
        )
        service = build_service(mock_session, cap_snapshot, make_account(1), position)

        result = await service.renew(1, PayerRole.SELF, PaymentMethod.USER_WALLET)

        assert result.old_cycle_number == 1
        assert result.new_cycle_number == 2
        assert result.cap_amount == Decimal("100000.00")
        assert result.amount_paid == Decimal("50000")
        assert result.renewal_record_id == 3
        assert result.payment_entry_id == 77

        assert result.position_id == 6
        assert result.previous_position_id == 5

        # Capped cycle stays behind as a closed, untouched record
        assert position.status == PositionStatus.CLOSED
        assert position.closed_at is not None
        assert position.cycle_number == 1
        assert position.cap_status == CapStatus.CAP_REACHED
        assert position.cumulative_yield == Decimal("40000")

        opened = service.position_repo.create.await_args.kwargs
        assert opened["status"] == PositionStatus.ACTIVE
        assert opened["cycle_number"] == 2
        assert opened["cap_status"] == CapStatus.ACTIVE
        assert opened["working_days_processed"] == 0
        assert opened["cumulative_yield"] == Decimal("0")

        tracker = service.tracker_repo.create.await_args.kwargs
        assert tracker["cycle_number"] == 2
        assert tracker["position_id"] == 6
        assert tracker["eligible_earnings_total"] == Decimal("0")

        record = service.renewal_repo.create.await_args.kwargs
        assert record["position_id"] == 6
        assert record["previous_position_id"] == 5

        debit = service.ledger.debit.await_args
        assert debit.args == (1, Decimal("50000"), IncomeType.RENEWAL_PAID)
        assert debit.kwargs["idempotency_key"] == "renewal:5:2"
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_not_capped(self, mock_session, cap_snapshot, make_account, make_position):
        """Test an ACTIVE position cannot be renewed."""
        service = build_service(
            mock_session, cap_snapshot, make_account(1), make_position()
        )

        with pytest.raises(ValidationError):
            await service.renew(1, PayerRole.SELF, PaymentMethod.USER_WALLET)

        service.ledger.debit.assert_not_awaited()
        mock_session.rollback.assert_awaited()

    @pytest.mark.asyncio
    async def test_sponsor_disabled(
        self, mock_session, cap_snapshot, make_account, make_position
    ):
        """Test sponsors may not pay while the option is off."""
        service = build_service(
            mock_session,
            cap_snapshot,
            make_account(2, upline_id=1),
            make_position(account_id=2, cap_status=CapStatus.CAP_REACHED),
        )

        with pytest.raises(PermissionDenied):
            await service.renew(
                2,
                PayerRole.SPONSOR,
                PaymentMethod.SPONSOR_WALLET,
                payer_account_id=1,
            )

    @pytest.mark.asyncio
    async def test_downgrade_rejected(self, mock_session, make_account, make_position):
        """Test renewing into a cheaper package is refused."""
        snapshot = ConfigurationSnapshot(
            version=4,
            packages=(
                Package(id="silver", name="Silver", price=Decimal("10000")),
                Package(id="gold", name="Gold", price=Decimal("50000")),
            ),
        )
        position = make_position(cap_status=CapStatus.CAP_REACHED, package_id="gold")
        service = build_service(mock_session, snapshot, make_account(1), position)

        with pytest.raises(ValidationError):
            await service.renew(
                1, PayerRole.SELF, PaymentMethod.USER_WALLET, plan_id="silver"
            )

        assert position.cycle_number == 1


class TestRequestRenewal:
    """Test renewal requests."""

    @pytest.mark.asyncio
    async def test_marks_pending(self, mock_session, cap_snapshot, make_account, make_position):
        position = make_position(cap_status=CapStatus.CAP_REACHED)
        service = build_service(mock_session, cap_snapshot, make_account(1), position)

        result = await service.request_renewal(1)

        assert result.cap_status == CapStatus.RENEWAL_PENDING
        service.audit_repo.record.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_active_position_cannot_request(
        self, mock_session, cap_snapshot, make_account, make_position
    ):
        service = build_service(
            mock_session, cap_snapshot, make_account(1), make_position()
        )

        with pytest.raises(ValidationError):
            await service.request_renewal(1)
