"""
Account model.

Represents a participant of the compensation plan and its upline pointer.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from compensation.models.base import Base
from compensation.models.enums import (
    AccountRole,
    AccountStatus,
    ProgramType,
)


if TYPE_CHECKING:
    from compensation.models.position import Position
    from compensation.models.wallet import Wallet


class Account(Base):
    """
    Account model.

    The upline is a plain id pointer: an account never owns its upline and
    there are no back-links. Downline traversal belongs to reporting and
    must use a separately materialized index.
    """

    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint(
            'direct_referral_count >= 0',
            name='check_account_direct_referral_count_non_negative'
        ),
        CheckConstraint(
            'upline_id IS NULL OR upline_id <> id',
            name='check_account_not_own_upline'
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Public identifier (member code)
    code: Mapped[str] = mapped_column(
        String(32), unique=True, index=True, nullable=False
    )
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    program_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ProgramType.INVESTOR.value
    )
    status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=AccountStatus.PENDING_ACTIVATION.value,
        index=True,
    )
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AccountRole.USER.value
    )

    # Referral graph (weak reference, lookup only)
    upline_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    direct_referral_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    # True once this account was counted in its upline's direct_referral_count
    referral_counted: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False
    )

    # Relationships
    positions: Mapped[list["Position"]] = relationship(
        "Position",
        back_populates="account",
        lazy="selectin",
    )
    wallet: Mapped["Wallet | None"] = relationship(
        "Wallet",
        back_populates="account",
        uselist=False,
        lazy="selectin",
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Account(id={self.id}, code={self.code}, "
            f"program={self.program_type}, status={self.status})>"
        )

    @property
    def is_leader(self) -> bool:
        """Leader accounts never grant or receive referral income."""
        return self.program_type == ProgramType.LEADER

    @property
    def is_active_investor(self) -> bool:
        """Check if account is an activated investor."""
        return (
            self.program_type == ProgramType.INVESTOR
            and self.status == AccountStatus.ACTIVE_INVESTOR
        )

    @property
    def is_admin(self) -> bool:
        """Check if account may issue admin commands."""
        return self.role in (AccountRole.ADMIN, AccountRole.SUPER_ADMIN)
