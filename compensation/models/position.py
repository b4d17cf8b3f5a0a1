"""
Position model.

Subscription position of an account: base amount, cap and cycle state.
"""

from datetime import UTC, date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from compensation.models.base import Base
from compensation.models.enums import CAPPED_STATUSES, CapStatus, PositionStatus
from compensation.models.types import MoneyType, MultiplierType


if TYPE_CHECKING:
    from compensation.models.account import Account


class Position(Base):
    """
    Position model - one ACTIVE position per account.

    Lifecycle:
    - Created ACTIVE on activation with cycle_number=1
    - cap_status ACTIVE -> CAP_REACHED when eligible earnings reach cap_amount
    - Renewal closes it (status CLOSED) and opens the next cycle as a new
      ACTIVE position; closed positions stay as history
    """

    __tablename__ = "positions"
    __table_args__ = (
        CheckConstraint(
            'base_amount > 0', name='check_position_base_amount_positive'
        ),
        CheckConstraint(
            'cap_multiplier > 0', name='check_position_cap_multiplier_positive'
        ),
        CheckConstraint(
            'cycle_number >= 1', name='check_position_cycle_number_positive'
        ),
        CheckConstraint(
            'working_days_processed >= 0',
            name='check_position_working_days_non_negative'
        ),
        Index(
            'uq_positions_one_active_per_account',
            'account_id',
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Owner
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PositionStatus.ACTIVE.value, index=True
    )
    package_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Cap configuration
    base_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    cap_multiplier: Mapped[Decimal] = mapped_column(MultiplierType, nullable=False)
    cap_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    # Cycle state
    cycle_number: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    cap_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CapStatus.ACTIVE.value, index=True
    )
    cap_reached_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    renewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Daily yield tracking
    working_days_processed: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    cumulative_yield: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    last_yield_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Timestamps
    activated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    closed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False
    )

    # Relationships
    account: Mapped["Account"] = relationship(
        "Account",
        back_populates="positions",
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Position(id={self.id}, account_id={self.account_id}, "
            f"base={self.base_amount}, cycle={self.cycle_number}, "
            f"cap_status={self.cap_status})>"
        )

    @property
    def is_capped(self) -> bool:
        """Check if position is waiting for renewal."""
        return self.cap_status in CAPPED_STATUSES
