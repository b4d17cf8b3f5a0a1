"""
Tests for cap arithmetic.

Tests cover:
- Cap terms per program (investor package price, leader flat base)
- Credits landing below, exactly on and past the cap
- Grace limit and non-stopping cap actions
"""

from decimal import Decimal

from compensation.config.snapshot import ProgramRules
from compensation.models.enums import ProgramType
from compensation.services.cap.cap_calculator import check_credit, compute_cap_terms


class TestCapTerms:
    """Test cap computation."""

    def test_investor_cap_is_twice_package(self):
        """Test 50,000 package gives a 100,000 cap."""
        terms = compute_cap_terms(
            Decimal("50000"), ProgramType.INVESTOR, ProgramRules()
        )
        assert terms.multiplier == Decimal("2.0")
        assert terms.cap_amount == Decimal("100000.00")

    def test_leader_cap_uses_flat_base(self):
        """Test leader cap ignores the price paid."""
        terms = compute_cap_terms(
            Decimal("50000"), ProgramType.LEADER, ProgramRules()
        )
        assert terms.base_amount == Decimal("1000")
        assert terms.cap_amount == Decimal("3000.00")

    def test_custom_multiplier(self):
        """Test configured multiplier is applied and rounded to cents."""
        rules = ProgramRules(investor_cap_multiplier=Decimal("1.5"))
        terms = compute_cap_terms(Decimal("333.33"), ProgramType.INVESTOR, rules)
        assert terms.cap_amount == Decimal("500.00")


class TestCheckCredit:
    """Test single credit checks."""

    def test_below_cap(self):
        """Test credit well under the cap."""
        check = check_credit(
            Decimal("1000"), Decimal("100000"), Decimal("5000"),
            Decimal("0"), True,
        )
        assert check.allowed is True
        assert check.cap_reached is False
        assert check.remaining == Decimal("94000")

    def test_exactly_at_cap_is_allowed_and_reaches_cap(self):
        """Test credit landing exactly on the cap."""
        check = check_credit(
            Decimal("99000"), Decimal("100000"), Decimal("1000"),
            Decimal("0"), True,
        )
        assert check.allowed is True
        assert check.cap_reached is True
        assert check.remaining == Decimal("0")

    def test_one_unit_over_cap_is_rejected(self):
        """Test one unit past the cap with no grace."""
        check = check_credit(
            Decimal("99000"), Decimal("100000"), Decimal("1001"),
            Decimal("0"), True,
        )
        assert check.allowed is False
        assert check.cap_reached is False
        assert check.projected_total == Decimal("100001")
        assert check.remaining == Decimal("1000")

    def test_overage_within_grace_is_allowed(self):
        """Test grace limit covers a small overage."""
        check = check_credit(
            Decimal("99000"), Decimal("100000"), Decimal("1050"),
            Decimal("100"), True,
        )
        assert check.allowed is True
        assert check.within_grace is True
        assert check.cap_reached is True

    def test_overage_beyond_grace_is_rejected(self):
        """Test overage larger than grace."""
        check = check_credit(
            Decimal("99000"), Decimal("100000"), Decimal("1200"),
            Decimal("100"), True,
        )
        assert check.allowed is False
        assert check.within_grace is False

    def test_block_withdrawals_only_never_refuses_credit(self):
        """Test cap actions that do not stop earnings."""
        check = check_credit(
            Decimal("99000"), Decimal("100000"), Decimal("5000"),
            Decimal("0"), False,
        )
        assert check.allowed is True
        assert check.cap_reached is True
