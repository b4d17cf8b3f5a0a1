"""
Tests for configuration snapshots, income type aliases and settings.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from compensation.config.settings import Settings
from compensation.config.snapshot import DEFAULT_SNAPSHOT, ConfigurationSnapshot
from compensation.config.store import ConfigurationStore, parse_snapshot
from compensation.models.enums import CapAction, IncomeType
from compensation.utils.exceptions import ValidationError


class TestIncomeTypeParse:
    """Test legacy alias normalization."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("daily_roi", IncomeType.DAILY_YIELD),
            ("direct_referral", IncomeType.REFERRAL_DIRECT),
            ("level_income", IncomeType.REFERRAL_LEVEL),
            ("bonus", IncomeType.ACHIEVEMENT),
            ("REFERRAL_DIRECT", IncomeType.REFERRAL_DIRECT),
            ("transfer_in", IncomeType.TRANSFER_IN),
        ],
    )
    def test_aliases(self, raw, expected):
        """Test aliases and canonical names."""
        assert IncomeType.parse(raw) == expected

    def test_unknown_type(self):
        """Test unknown strings are refused."""
        with pytest.raises(ValueError):
            IncomeType.parse("lottery")


class TestSnapshot:
    """Test snapshot parsing."""

    def test_defaults(self):
        """Test built-in defaults."""
        assert DEFAULT_SNAPSHOT.version == 0
        assert DEFAULT_SNAPSHOT.cap.enable_id_renewal_rule is False
        assert DEFAULT_SNAPSHOT.referral.direct_referral_percent == Decimal("5")
        assert DEFAULT_SNAPSHOT.referral.enable_multi_level_income is False
        assert DEFAULT_SNAPSHOT.program.investor_cap_multiplier == Decimal("2.0")

    def test_legacy_eligible_types_are_normalized(self):
        """Test alias strings in the cap rule document."""
        snapshot = parse_snapshot(
            {
                "cap": {
                    "enable_id_renewal_rule": True,
                    "cap_action": "STOP_BOTH",
                    "eligible_income_types": ["daily_roi", "direct_referral"],
                }
            },
            version=4,
        )
        assert snapshot.version == 4
        assert snapshot.cap.cap_action == CapAction.STOP_BOTH
        assert snapshot.cap.eligible_income_types == frozenset(
            {IncomeType.DAILY_YIELD, IncomeType.REFERRAL_DIRECT}
        )

    def test_yield_alias(self):
        """Test the document key 'yield' maps to yield rules."""
        snapshot = parse_snapshot(
            {"yield": {"leader_yield_enabled": True}}, version=1
        )
        assert snapshot.yield_rules.leader_yield_enabled is True

    def test_leader_referral_income_is_locked_off(self):
        """Test the leader referral switch cannot be enabled."""
        with pytest.raises(ValidationError):
            parse_snapshot(
                {"referral": {"enable_leader_referral_income": True}}, version=1
            )

    def test_invalid_document(self):
        """Test a malformed document raises ValidationError."""
        with pytest.raises(ValidationError):
            parse_snapshot({"payout": {"admin_charges_percent": "150"}}, version=1)

    def test_snapshot_is_frozen(self):
        """Test snapshots cannot be edited in place."""
        snapshot = ConfigurationSnapshot()
        with pytest.raises(Exception):
            snapshot.version = 9


class TestConfigurationStore:
    """Test store reads and publishes."""

    @pytest.mark.asyncio
    async def test_get_current_without_documents(self, mock_session):
        """Test defaults when nothing was published."""
        store = ConfigurationStore(mock_session)
        store.repository = AsyncMock()
        store.repository.get_latest.return_value = None

        assert await store.get_current() is DEFAULT_SNAPSHOT

    @pytest.mark.asyncio
    async def test_get_current_parses_latest(self, mock_session):
        """Test the latest document is parsed with its version."""
        store = ConfigurationStore(mock_session)
        store.repository = AsyncMock()
        store.repository.get_latest.return_value = MagicMock(
            version=7,
            document={"referral": {"direct_referral_percent": "6"}},
        )

        snapshot = await store.get_current()
        assert snapshot.version == 7
        assert snapshot.referral.direct_referral_percent == Decimal("6")

    @pytest.mark.asyncio
    async def test_publish_appends_next_version(self, mock_session):
        """Test publish writes version N+1."""
        store = ConfigurationStore(mock_session)
        store.repository = AsyncMock()
        store.repository.get_max_version.return_value = 2

        snapshot = await store.publish(
            {"payout": {"admin_charges_percent": "12"}}, published_by="ops"
        )

        assert snapshot.version == 3
        kwargs = store.repository.create.await_args.kwargs
        assert kwargs["version"] == 3
        assert kwargs["published_by"] == "ops"
        assert kwargs["document"]["payout"]["admin_charges_percent"] == "12"
        assert "yield" in kwargs["document"]


class TestSettings:
    """Test environment settings validation."""

    def test_rejects_non_postgres_url(self):
        """Test database URL scheme check."""
        with pytest.raises(ValueError):
            Settings(database_url="mysql://localhost/db", environment="test")

    def test_async_database_url(self):
        """Test driver is added to plain postgres URLs."""
        settings = Settings(
            database_url="postgresql://u:p@localhost/db", environment="test"
        )
        assert settings.async_database_url == "postgresql+asyncpg://u:p@localhost/db"

    def test_debug_forbidden_in_production(self):
        """Test production guard."""
        with pytest.raises(ValueError):
            Settings(
                database_url="postgresql://u:p@localhost/db",
                environment="production",
                debug=True,
            )


class TestDatabase:
    """Test the shared session factory."""

    def test_session_factory(self):
        """Test sessions keep loaded state after commit."""
        from compensation.config.database import async_engine, async_session_maker

        assert async_engine.url.drivername == "postgresql+asyncpg"
        assert async_session_maker.kw["expire_on_commit"] is False
        assert async_session_maker.kw["autoflush"] is False
