"""
Tests for AdminService.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from compensation.models.enums import AccountRole, AdminCommandType, IncomeType
from compensation.services.admin_service import Actor, AdminCommand, AdminService
from compensation.utils.exceptions import CapExceeded, PermissionDenied, ValidationError


ADMIN = Actor(id=99, role=AccountRole.ADMIN)


@pytest.fixture
def service(mock_session, snapshot):
    admin = AdminService(mock_session, snapshot)
    admin.audit_repo = AsyncMock()
    return admin


def adjust(**overrides) -> AdminCommand:
    data = {
        "type": "ADJUST_WALLET",
        "account_id": 7,
        "amount": "250",
        "description": "Bonanza prize",
    }
    data.update(overrides)
    return AdminCommand(**data)


class TestAdminCommand:
    """Test command parsing."""

    def test_legacy_income_alias(self):
        command = adjust(income_type="bonus")

        assert command.type == AdminCommandType.ADJUST_WALLET
        assert command.income_type == IncomeType.ACHIEVEMENT
        assert command.amount == Decimal("250")


class TestAdjustWallet:
    """Test wallet adjustments."""

    @pytest.mark.asyncio
    async def test_regular_user_denied(self, service):
        """Test non-admins cannot run commands."""
        with pytest.raises(PermissionDenied):
            await service.execute(adjust(), Actor(id=7, role=AccountRole.USER))

        service.audit_repo.record.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_adjustment_posted_and_audited(self, service, mock_session):
        with patch("compensation.services.admin_service.LedgerService") as ledger_cls:
            ledger_cls.return_value.post = AsyncMock(
                return_value=MagicMock(ledger_entry_id=9)
            )

            result = await service.execute(adjust(), ADMIN)

        assert result.success is True
        assert result.data.ledger_entry_id == 9

        args = ledger_cls.return_value.post.await_args
        assert args.args == (7, Decimal("250"), IncomeType.ADMIN_ADJUST)
        assert args.kwargs["skip_cap_check"] is False

        action = service.audit_repo.record.await_args.args[0]
        assert action == "wallet_adjusted"
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_disallowed_income_type(self, service):
        """Test only ADMIN_ADJUST and ACHIEVEMENT may be adjusted."""
        with pytest.raises(ValidationError):
            await service.execute(adjust(income_type="DAILY_YIELD"), ADMIN)

    @pytest.mark.asyncio
    async def test_description_required(self, service):
        with pytest.raises(ValidationError):
            await service.execute(adjust(description=None), ADMIN)

    @pytest.mark.asyncio
    async def test_cap_rejection_is_audited(self, service, mock_session):
        """Test a refused adjustment keeps its audit record and re-raises."""
        refusal = CapExceeded(
            reason="cap",
            cap_status="CAP_REACHED",
            earnings_total=Decimal("100000"),
            cap_amount=Decimal("100000"),
            ledger_entry_id=15,
        )
        with patch("compensation.services.admin_service.LedgerService") as ledger_cls:
            ledger_cls.return_value.post = AsyncMock(side_effect=refusal)

            with pytest.raises(CapExceeded):
                await service.execute(adjust(income_type="ACHIEVEMENT"), ADMIN)

        call = service.audit_repo.record.await_args
        assert call.args[0] == "wallet_adjustment_rejected"
        assert call.kwargs["ledger_entry_id"] == 15
        mock_session.commit.assert_awaited_once()
        mock_session.rollback.assert_not_awaited()
