"""
Tests for level bands and qualification thresholds.
"""

from decimal import Decimal

import pytest

from compensation.config.snapshot import LevelBand, QualificationRules, ReferralRules
from compensation.services.referral.bands import (
    is_qualified,
    required_direct_referrals,
    resolve_band_percent,
)


DEFAULT_BANDS = ReferralRules().level_bands


class TestResolveBandPercent:
    """Test band lookup."""

    @pytest.mark.parametrize(
        "level,expected",
        [
            (1, Decimal("5")),
            (5, Decimal("5")),
            (6, Decimal("4")),
            (15, Decimal("3")),
            (20, Decimal("2")),
            (25, Decimal("1")),
        ],
    )
    def test_default_bands(self, level, expected):
        """Test default band table."""
        assert resolve_band_percent(DEFAULT_BANDS, level) == expected

    def test_level_outside_bands(self):
        """Test level past the last band pays nothing."""
        assert resolve_band_percent(DEFAULT_BANDS, 26) is None

    def test_no_bands(self):
        """Test empty band list."""
        assert resolve_band_percent((), 1) is None

    def test_overlap_resolves_to_first_declared(self):
        """Test declaration order wins on overlapping bands."""
        bands = (
            LevelBand(level_from=1, level_to=10, percent=Decimal("7")),
            LevelBand(level_from=5, level_to=15, percent=Decimal("2")),
        )
        assert resolve_band_percent(bands, 7) == Decimal("7")
        assert resolve_band_percent(bands, 12) == Decimal("2")

    def test_inverted_band_is_invalid(self):
        """Test level_to below level_from is refused."""
        with pytest.raises(ValueError):
            LevelBand(level_from=6, level_to=5, percent=Decimal("1"))


class TestQualification:
    """Test direct referral thresholds."""

    @pytest.mark.parametrize(
        "level,required",
        [
            (1, 1),
            (3, 1),
            (4, 2),
            (7, 3),
            (13, 5),
            (14, 7),
            (15, 8),
            (25, 13),
        ],
    )
    def test_required_direct_referrals(self, level, required):
        """Test flat, mid and high band thresholds."""
        assert required_direct_referrals(level, QualificationRules()) == required

    def test_disabled_qualification_always_passes(self):
        """Test everyone qualifies when the rule is off."""
        assert is_qualified(0, 25, QualificationRules(enabled=False)) is True

    def test_enabled_qualification(self):
        """Test thresholds are enforced when the rule is on."""
        rules = QualificationRules(enabled=True)
        assert is_qualified(2, 7, rules) is False
        assert is_qualified(3, 7, rules) is True
