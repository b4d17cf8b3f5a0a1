"""
Tests for ReferralDistributor.

Tests cover:
- Direct credit of 5% to an active investor upline
- Leader exclusion on both sides
- Already processed activations
- Cap refusal of the direct credit
- Multi-level walk with band lookup and ineligible ancestors
- Direct referral bookkeeping
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from compensation.config.snapshot import (
    ConfigurationSnapshot,
    QualificationRules,
    ReferralRules,
)
from compensation.models.enums import AccountStatus, IncomeType, ProgramType
from compensation.services.referral.referral_distributor import (
    ActivationEvent,
    LevelSkipReason,
    ReferralDistributor,
    ReferralSkipReason,
)
from compensation.utils.exceptions import CapExceeded


def build_distributor(session, snapshot, accounts, chain=()):
    ledger = AsyncMock()
    entry_ids = iter(range(300, 400))
    ledger.post.side_effect = lambda *args, **kwargs: MagicMock(
        ledger_entry_id=next(entry_ids)
    )

    distributor = ReferralDistributor(session, snapshot, ledger=ledger)
    distributor.account_repo = AsyncMock()
    distributor.account_repo.get_by_id.side_effect = lambda account_id: accounts.get(account_id)
    distributor.account_repo.get_for_update.side_effect = lambda account_id: accounts.get(account_id)
    distributor.account_repo.get_upline_chain.return_value = list(chain)
    distributor.account_repo.mark_referral_counted.return_value = True
    distributor.ledger_repo = AsyncMock()
    distributor.ledger_repo.exists_referral_entry.return_value = False
    distributor.audit_repo = AsyncMock()
    return distributor


@pytest.fixture
def event():
    """Activation of account 2 for 100,000."""
    return ActivationEvent(
        account_id=2, position_id=9, activation_amount=Decimal("100000")
    )


class TestDirectCredit:
    """Test the direct referral credit."""

    @pytest.mark.asyncio
    async def test_direct_credit_to_active_investor(
        self, mock_session, snapshot, make_account, event
    ):
        """Test the upline receives 5,000 once."""
        accounts = {1: make_account(1), 2: make_account(2, upline_id=1)}
        distributor = build_distributor(mock_session, snapshot, accounts)

        result = await distributor.distribute(event)

        assert result.success is True
        assert result.reason is None
        assert result.direct_upline_id == 1
        assert result.direct_amount == Decimal("5000.00")
        assert result.direct_entry_id == 300
        assert result.total_amount == Decimal("5000.00")

        args = distributor.ledger.post.await_args
        assert args.args[:3] == (1, Decimal("5000.00"), IncomeType.REFERRAL_DIRECT)
        assert args.kwargs["idempotency_key"] == "referral_direct:1:2"
        assert args.kwargs["metadata"].source_account_id == 2

        distributor.account_repo.increment_direct_referral_count.assert_awaited_once_with(1)
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_leader_activation_grants_nothing(
        self, mock_session, snapshot, make_account, event
    ):
        """Test leader accounts never generate referral income."""
        accounts = {
            1: make_account(1),
            2: make_account(
                2, upline_id=1, program=ProgramType.LEADER,
                status=AccountStatus.ACTIVE_LEADER,
            ),
        }
        distributor = build_distributor(mock_session, snapshot, accounts)

        result = await distributor.distribute(event)

        assert result.success is False
        assert result.reason == ReferralSkipReason.LEADER_ACCOUNT
        distributor.ledger.post.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_leader_upline_receives_nothing(
        self, mock_session, snapshot, make_account, event
    ):
        """Test leader uplines are skipped."""
        accounts = {
            1: make_account(
                1, program=ProgramType.LEADER, status=AccountStatus.ACTIVE_LEADER
            ),
            2: make_account(2, upline_id=1),
        }
        distributor = build_distributor(mock_session, snapshot, accounts)

        result = await distributor.distribute(event)

        assert result.reason == ReferralSkipReason.UPLINE_LEADER
        assert result.direct_upline_id == 1
        distributor.ledger.post.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_already_processed(self, mock_session, snapshot, make_account, event):
        """Test a second distribution of the same activation is a no-op."""
        accounts = {1: make_account(1), 2: make_account(2, upline_id=1)}
        distributor = build_distributor(mock_session, snapshot, accounts)
        distributor.ledger_repo.exists_referral_entry.return_value = True

        result = await distributor.distribute(event)

        assert result.success is False
        assert result.reason == ReferralSkipReason.ALREADY_PROCESSED
        distributor.ledger.post.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_upline(self, mock_session, snapshot, make_account, event):
        """Test root accounts."""
        distributor = build_distributor(mock_session, snapshot, {2: make_account(2)})

        result = await distributor.distribute(event)

        assert result.reason == ReferralSkipReason.NO_UPLINE

    @pytest.mark.asyncio
    async def test_cap_refusal_is_reported(
        self, mock_session, snapshot, make_account, event
    ):
        """Test a capped upline yields a rejection, not an error."""
        accounts = {1: make_account(1), 2: make_account(2, upline_id=1)}
        distributor = build_distributor(mock_session, snapshot, accounts)
        distributor.ledger.post.side_effect = CapExceeded(
            reason="Renew ID",
            cap_status="CAP_REACHED",
            earnings_total=Decimal("100000"),
            cap_amount=Decimal("100000"),
            ledger_entry_id=77,
        )

        result = await distributor.distribute(event)

        assert result.success is False
        assert result.reason == ReferralSkipReason.CAP_EXCEEDED
        assert result.direct_amount == Decimal("0")
        assert result.direct_rejection.cap_amount == Decimal("100000")
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_disabled_referral_still_counts_referral(
        self, mock_session, make_account, event
    ):
        """Test bookkeeping runs even when income is switched off."""
        snapshot = ConfigurationSnapshot(
            referral=ReferralRules(enable_referral_income_global=False)
        )
        accounts = {1: make_account(1), 2: make_account(2, upline_id=1)}
        distributor = build_distributor(mock_session, snapshot, accounts)

        result = await distributor.distribute(event)

        assert result.reason == ReferralSkipReason.REFERRAL_DISABLED
        distributor.ledger.post.assert_not_awaited()
        distributor.account_repo.increment_direct_referral_count.assert_awaited_once_with(1)

    @pytest.mark.asyncio
    async def test_daily_limit(self, mock_session, make_account, event):
        """Test the per-day anti-abuse ceiling."""
        snapshot = ConfigurationSnapshot.model_validate(
            {"referral": {"anti_abuse": {"max_referral_income_per_day": "6000"}}}
        )
        accounts = {1: make_account(1), 2: make_account(2, upline_id=1)}
        distributor = build_distributor(mock_session, snapshot, accounts)
        distributor.ledger_repo.sum_referral_income_on.return_value = Decimal("1500")

        result = await distributor.distribute(event)

        assert result.reason == ReferralSkipReason.DAILY_LIMIT
        distributor.ledger.post.assert_not_awaited()


class TestMultiLevel:
    """Test the multi-level walk."""

    @pytest.mark.asyncio
    async def test_levels_start_above_direct_upline(
        self, mock_session, multi_level_snapshot, make_account, event
    ):
        """Test band lookup per level and skipped ineligible ancestors."""
        ancestor1 = make_account(10)
        ancestor2 = make_account(
            11, program=ProgramType.LEADER, status=AccountStatus.ACTIVE_LEADER
        )
        ancestor3 = make_account(12)
        accounts = {
            1: make_account(1, upline_id=10),
            2: make_account(2, upline_id=1),
            10: ancestor1,
            11: ancestor2,
            12: ancestor3,
        }
        distributor = build_distributor(
            mock_session, multi_level_snapshot, accounts,
            chain=[ancestor1, ancestor2, ancestor3],
        )

        result = await distributor.distribute(event)

        assert result.success is True
        assert result.per_level_amounts == [
            (1, Decimal("5000.00")),
            (3, Decimal("5000.00")),
        ]
        assert [(s.level, s.reason) for s in result.level_skips] == [
            (2, LevelSkipReason.INELIGIBLE_ANCESTOR),
        ]
        assert result.total_amount == Decimal("15000.00")

        distributor.account_repo.get_upline_chain.assert_awaited_once_with(1, 25)
        level_call = distributor.ledger.post.await_args_list[1]
        assert level_call.args[:3] == (10, Decimal("5000.00"), IncomeType.REFERRAL_LEVEL)
        assert level_call.kwargs["idempotency_key"] == "referral_level:10:2:1"
        assert level_call.kwargs["metadata"].level == 1

    @pytest.mark.asyncio
    async def test_unqualified_ancestor_is_skipped(
        self, mock_session, make_account, event
    ):
        """Test qualification thresholds gate level credits."""
        snapshot = ConfigurationSnapshot(
            referral=ReferralRules(
                enable_multi_level_income=True,
                qualification=QualificationRules(enabled=True),
            )
        )
        ancestor = make_account(10, direct_referral_count=0)
        accounts = {
            1: make_account(1, upline_id=10),
            2: make_account(2, upline_id=1),
            10: ancestor,
        }
        distributor = build_distributor(
            mock_session, snapshot, accounts, chain=[ancestor]
        )

        result = await distributor.distribute(event)

        assert result.direct_amount == Decimal("5000.00")
        assert result.level_credits == []
        assert result.level_skips[0].reason == LevelSkipReason.NOT_QUALIFIED

    @pytest.mark.asyncio
    async def test_multi_level_disabled_by_default(
        self, mock_session, snapshot, make_account, event
    ):
        """Test the chain is not walked unless enabled."""
        accounts = {1: make_account(1, upline_id=10), 2: make_account(2, upline_id=1)}
        distributor = build_distributor(mock_session, snapshot, accounts)

        await distributor.distribute(event)

        distributor.account_repo.get_upline_chain.assert_not_awaited()
