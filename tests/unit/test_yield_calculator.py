"""
Tests for daily yield arithmetic and the business calendar.
"""

from datetime import date
from decimal import Decimal

from compensation.config.snapshot import YieldRules
from compensation.services.cycle.yield_calculator import (
    daily_yield_amount,
    has_days_left,
    select_tier,
)
from compensation.utils.datetime_utils import is_working_day, iso_week_key


class TestSelectTier:
    """Test tier selection by base amount."""

    def test_threshold_selects_with_security(self):
        """Test base at the threshold uses the higher tier."""
        tier = select_tier(Decimal("50000"), YieldRules())
        assert tier.daily_percent == Decimal("2")

    def test_below_threshold_selects_without_security(self):
        """Test base under the threshold."""
        tier = select_tier(Decimal("49999.99"), YieldRules())
        assert tier.daily_percent == Decimal("1.5")


class TestDailyYieldAmount:
    """Test yield amounts."""

    def test_with_security_amount(self):
        """Test 2% of 50,000."""
        rules = YieldRules()
        assert daily_yield_amount(Decimal("50000"), rules.with_security) == Decimal("1000.00")

    def test_without_security_amount_rounds_to_cents(self):
        """Test 1.5% of 333.33."""
        rules = YieldRules()
        assert daily_yield_amount(Decimal("333.33"), rules.without_security) == Decimal("5.00")

    def test_zero_base(self):
        """Test zero base yields nothing."""
        assert daily_yield_amount(Decimal("0"), YieldRules().with_security) == Decimal("0")

    def test_days_left(self):
        """Test the working day ceiling."""
        tier = YieldRules().with_security
        assert has_days_left(59, tier) is True
        assert has_days_left(60, tier) is False


class TestBusinessCalendar:
    """Test working days and week keys."""

    def test_weekdays_are_working_days(self):
        """Test Monday through Friday."""
        assert is_working_day(date(2025, 1, 6)) is True   # Monday
        assert is_working_day(date(2025, 1, 10)) is True  # Friday

    def test_weekend_is_not_working_day(self):
        """Test Saturday and Sunday."""
        assert is_working_day(date(2025, 1, 4)) is False
        assert is_working_day(date(2025, 1, 5)) is False

    def test_iso_week_key(self):
        """Test ISO week formatting, including the year boundary."""
        assert iso_week_key(date(2025, 1, 6)) == "2025-W02"
        assert iso_week_key(date(2024, 12, 30)) == "2025-W01"
