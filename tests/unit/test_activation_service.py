"""
Tests for ActivationService.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from compensation.models.enums import (
    AccountRole,
    AccountStatus,
    IncomeType,
    PayerRole,
    PaymentMethod,
)
from compensation.services.activation_service import ActivationService
from compensation.utils.exceptions import ValidationError


def build_service(session, snapshot, account, active_position=None):
    service = ActivationService(session, snapshot)
    service.ledger = AsyncMock()
    service.ledger.debit.return_value = MagicMock(ledger_entry_id=40)
    service.account_repo = AsyncMock()
    service.account_repo.get_for_update.return_value = account
    service.position_repo = AsyncMock()
    service.position_repo.get_active.return_value = active_position
    service.position_repo.create.return_value = MagicMock(id=5)
    service.tracker_repo = AsyncMock()
    service.audit_repo = AsyncMock()
    return service


class TestActivate:
    """Test activation and hand-off to the distributor."""

    @pytest.mark.asyncio
    async def test_opens_position_and_distributes(
        self, mock_session, snapshot, make_account
    ):
        account = make_account(2, upline_id=1, status=AccountStatus.PENDING_ACTIVATION)
        service = build_service(mock_session, snapshot, account)

        with patch(
            "compensation.services.activation_service.ReferralDistributor"
        ) as distributor_cls:
            distributor_cls.return_value.distribute = AsyncMock(return_value="done")

            result = await service.activate(2, amount=Decimal("1000"))

        assert result.position_id == 5
        assert result.cap_amount == Decimal("2000.00")
        assert result.payment_entry_id == 40
        assert result.distribution == "done"
        assert account.status == AccountStatus.ACTIVE_INVESTOR

        debit = service.ledger.debit.await_args
        assert debit.args == (2, Decimal("1000"), IncomeType.ACTIVATION_PAID)
        assert debit.kwargs["idempotency_key"] == "activation:2"

        event = distributor_cls.return_value.distribute.await_args.args[0]
        assert event.account_id == 2
        assert event.activation_amount == Decimal("1000")

    @pytest.mark.asyncio
    async def test_distribution_failure_keeps_activation(
        self, mock_session, snapshot, make_account
    ):
        service = build_service(mock_session, snapshot, make_account(2, upline_id=1))
        service.account_repo.get_by_id.return_value = make_account(99, role=AccountRole.ADMIN)

        with patch(
            "compensation.services.activation_service.ReferralDistributor"
        ) as distributor_cls:
            distributor_cls.return_value.distribute = AsyncMock(
                side_effect=RuntimeError("broker down")
            )

            result = await service.activate(
                2,
                amount=Decimal("1000"),
                payer_role=PayerRole.ADMIN,
                method=PaymentMethod.ADMIN_COMPLIMENTARY,
                payer_account_id=99,
            )

        assert result.position_id == 5
        assert result.distribution is None
        assert result.payment_entry_id is None
        service.ledger.debit.assert_not_awaited()
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_already_active(self, mock_session, snapshot, make_account, make_position):
        service = build_service(
            mock_session, snapshot, make_account(2), active_position=make_position()
        )

        with pytest.raises(ValidationError):
            await service.activate(2, amount=Decimal("1000"))

        service.position_repo.create.assert_not_awaited()
