"""
Shared fixtures for unit tests.

This module provides:
- Configuration snapshots (defaults, cap rule enabled)
- Factories for unsaved model instances
"""

from datetime import date
from decimal import Decimal

import pytest

from compensation.config.snapshot import (
    CapRules,
    ConfigurationSnapshot,
    ReferralRules,
)
from compensation.models import Account, CapTracker, Position, Wallet
from compensation.models.enums import (
    AccountRole,
    AccountStatus,
    CapStatus,
    PositionStatus,
    ProgramType,
)


@pytest.fixture
def snapshot():
    """Built-in defaults (cap rule disabled)."""
    return ConfigurationSnapshot(version=1)


@pytest.fixture
def cap_snapshot():
    """Defaults with the ID renewal rule switched on."""
    return ConfigurationSnapshot(
        version=2,
        cap=CapRules(enable_id_renewal_rule=True),
    )


@pytest.fixture
def multi_level_snapshot():
    """Defaults with multi-level income switched on."""
    return ConfigurationSnapshot(
        version=3,
        referral=ReferralRules(enable_multi_level_income=True),
    )


@pytest.fixture
def make_account():
    """
    Factory for Account instances.

    Defaults: active investor, regular user, no upline.
    """
    def _make(
        account_id: int,
        upline_id: int | None = None,
        program: ProgramType = ProgramType.INVESTOR,
        status: AccountStatus = AccountStatus.ACTIVE_INVESTOR,
        role: AccountRole = AccountRole.USER,
        direct_referral_count: int = 0,
    ) -> Account:
        return Account(
            id=account_id,
            code=f"M{account_id:05d}",
            program_type=program.value,
            status=status.value,
            role=role.value,
            upline_id=upline_id,
            direct_referral_count=direct_referral_count,
            referral_counted=False,
        )

    return _make


@pytest.fixture
def make_position():
    """
    Factory for Position instances.

    Defaults: ACTIVE cycle 1 on a 50,000 base with a 100,000 cap.
    """
    def _make(
        position_id: int = 5,
        account_id: int = 1,
        base_amount: Decimal = Decimal("50000"),
        cap_amount: Decimal = Decimal("100000"),
        cap_status: CapStatus = CapStatus.ACTIVE,
        cycle_number: int = 1,
        working_days_processed: int = 0,
        cumulative_yield: Decimal = Decimal("0"),
        last_yield_date: date | None = None,
        package_id: str | None = None,
    ) -> Position:
        return Position(
            id=position_id,
            account_id=account_id,
            status=PositionStatus.ACTIVE.value,
            package_id=package_id,
            base_amount=base_amount,
            cap_multiplier=Decimal("2.0"),
            cap_amount=cap_amount,
            cycle_number=cycle_number,
            cap_status=cap_status.value,
            working_days_processed=working_days_processed,
            cumulative_yield=cumulative_yield,
            last_yield_date=last_yield_date,
        )

    return _make


@pytest.fixture
def make_tracker():
    """Factory for CapTracker instances."""
    def _make(
        earnings_total: Decimal = Decimal("0"),
        cap_amount: Decimal = Decimal("100000"),
        status: CapStatus = CapStatus.ACTIVE,
        account_id: int = 1,
        cycle_number: int = 1,
    ) -> CapTracker:
        return CapTracker(
            account_id=account_id,
            position_id=5,
            cycle_number=cycle_number,
            cap_amount=cap_amount,
            eligible_earnings_total=earnings_total,
            status=status.value,
        )

    return _make


@pytest.fixture
def make_wallet():
    """Factory for Wallet instances."""
    def _make(
        account_id: int = 1,
        available: Decimal = Decimal("0"),
        pending: Decimal = Decimal("0"),
    ) -> Wallet:
        return Wallet(
            account_id=account_id,
            available_balance=available,
            pending_balance=pending,
            lifetime_earned=Decimal("0"),
            lifetime_withdrawn=Decimal("0"),
        )

    return _make
