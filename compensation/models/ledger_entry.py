"""
LedgerEntry model.

Append-only record of every credit, debit and rejected credit.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from compensation.models.base import Base
from compensation.models.enums import SETTLED_STATUSES, EntryStatus, IncomeType
from compensation.models.types import MoneyType


class LedgerEntry(Base):
    """
    LedgerEntry entity.

    Rows are never updated after insert. Within one account, entries are
    ordered by id (BIGSERIAL), which follows creation order.

    Metadata fields that drive matching logic (source account, level,
    position, cap flag) are promoted to columns so idempotency checks are
    index lookups; the free-form remainder lives in ``details``.
    """

    __tablename__ = "ledger_entries"
    __table_args__ = (
        Index("idx_ledger_account_type", "account_id", "type"),
        Index(
            "idx_ledger_account_source_level",
            "account_id", "source_account_id", "level",
        ),
        Index("idx_ledger_account_created", "account_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)

    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    type: Mapped[str] = mapped_column(String(30), nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Promoted metadata
    source_account_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True, index=True
    )
    level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    position_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    counts_toward_cap: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    cycle_number: Mapped[int | None] = mapped_column(Integer, nullable=True)

    details: Mapped[dict[str, Any]] = mapped_column(
        JSONB, nullable=False, default=dict
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Exactly-once marker (e.g. "daily_yield:15:2025-01-06")
    idempotency_key: Mapped[str | None] = mapped_column(
        String(200), nullable=True, unique=True
    )
    config_version: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<LedgerEntry(id={self.id}, account_id={self.account_id}, "
            f"type={self.type}, amount={self.amount}, status={self.status})>"
        )

    @property
    def income_type(self) -> IncomeType:
        """Entry type as enum."""
        return IncomeType.parse(self.type)

    @property
    def is_settled(self) -> bool:
        """True if the entry moved available balance."""
        return self.status in SETTLED_STATUSES

    @property
    def is_rejected(self) -> bool:
        """True if the entry records a refused credit."""
        return self.status == EntryStatus.REJECTED
