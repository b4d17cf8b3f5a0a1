"""
Wallet model.

Balance projection of an account's ledger.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from compensation.models.base import Base
from compensation.models.types import MoneyType


if TYPE_CHECKING:
    from compensation.models.account import Account


class Wallet(Base):
    """Wallet model - one per account."""

    __tablename__ = "wallets"
    __table_args__ = (
        CheckConstraint(
            'available_balance >= 0', name='check_wallet_available_non_negative'
        ),
        CheckConstraint(
            'pending_balance >= 0', name='check_wallet_pending_non_negative'
        ),
        CheckConstraint(
            'lifetime_earned >= 0', name='check_wallet_lifetime_earned_non_negative'
        ),
        CheckConstraint(
            'lifetime_withdrawn >= 0',
            name='check_wallet_lifetime_withdrawn_non_negative'
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True
    )

    available_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    pending_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    lifetime_earned: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    lifetime_withdrawn: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False
    )

    account: Mapped["Account"] = relationship(
        "Account",
        back_populates="wallet",
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Wallet(account_id={self.account_id}, "
            f"available={self.available_balance}, pending={self.pending_balance})>"
        )
