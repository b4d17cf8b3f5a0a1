"""
CapTracker model.

Per (account, cycle) accumulator of cap-eligible earnings.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from compensation.models.base import Base
from compensation.models.enums import CapStatus
from compensation.models.types import MoneyType


class CapTracker(Base):
    """
    CapTracker entity.

    eligible_earnings_total only grows within a cycle. A renewal opens a
    new row for the next cycle; rows of past cycles are kept unchanged.
    """

    __tablename__ = "cap_trackers"
    __table_args__ = (
        UniqueConstraint(
            'account_id', 'cycle_number', name='uq_cap_tracker_account_cycle'
        ),
        CheckConstraint(
            'eligible_earnings_total >= 0',
            name='check_cap_tracker_total_non_negative'
        ),
        CheckConstraint(
            'cap_amount >= 0', name='check_cap_tracker_cap_non_negative'
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    position_id: Mapped[int | None] = mapped_column(
        ForeignKey("positions.id", ondelete="SET NULL"),
        nullable=True
    )
    cycle_number: Mapped[int] = mapped_column(Integer, nullable=False)

    eligible_earnings_total: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    cap_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CapStatus.ACTIVE.value
    )
    cap_reached_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<CapTracker(account_id={self.account_id}, "
            f"cycle={self.cycle_number}, total={self.eligible_earnings_total}, "
            f"cap={self.cap_amount})>"
        )

    @property
    def remaining(self) -> Decimal:
        """Headroom left in this cycle, never negative."""
        return max(self.cap_amount - self.eligible_earnings_total, Decimal("0"))
