"""
PayoutRequest model.

Weekly payout request created from an account's available balance.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from compensation.models.base import Base
from compensation.models.enums import PayoutStatus
from compensation.models.types import MoneyType, PercentType


class PayoutRequest(Base):
    """PayoutRequest model - settled manually by operators."""

    __tablename__ = "payout_requests"
    __table_args__ = (
        UniqueConstraint('account_id', 'week_key', name='uq_payout_account_week'),
        CheckConstraint('gross_amount > 0', name='check_payout_gross_positive'),
        CheckConstraint('net_amount >= 0', name='check_payout_net_non_negative'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    # ISO week, e.g. "2025-W02"
    week_key: Mapped[str] = mapped_column(String(10), nullable=False)

    gross_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    admin_charges: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    admin_charges_percent: Mapped[Decimal] = mapped_column(PercentType, nullable=False)
    net_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PayoutStatus.PENDING.value, index=True
    )
    ledger_entry_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    paid_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<PayoutRequest(id={self.id}, account_id={self.account_id}, "
            f"week={self.week_key}, net={self.net_amount}, status={self.status})>"
        )
