"""
RenewalRecord model.

Links an account's old and new cycle with how the renewal was paid.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from compensation.models.base import Base
from compensation.models.types import MoneyType


class RenewalRecord(Base):
    """RenewalRecord model - one row per completed cycle transition."""

    __tablename__ = "renewal_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    # Position opened for the new cycle
    position_id: Mapped[int] = mapped_column(
        ForeignKey("positions.id", ondelete="CASCADE"),
        nullable=False
    )
    # Position closed by this renewal
    previous_position_id: Mapped[int | None] = mapped_column(
        ForeignKey("positions.id", ondelete="SET NULL"),
        nullable=True
    )

    old_cycle_number: Mapped[int] = mapped_column(Integer, nullable=False)
    new_cycle_number: Mapped[int] = mapped_column(Integer, nullable=False)

    old_package_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    new_package_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    new_base_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    new_cap_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    amount_paid: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    fee_amount: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    payer_role: Mapped[str] = mapped_column(String(20), nullable=False)
    payer_account_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    method: Mapped[str] = mapped_column(String(30), nullable=False)
    payment_reference: Mapped[str | None] = mapped_column(String(255), nullable=True)
    payment_entry_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<RenewalRecord(account_id={self.account_id}, "
            f"cycle {self.old_cycle_number}->{self.new_cycle_number}, "
            f"method={self.method})>"
        )
