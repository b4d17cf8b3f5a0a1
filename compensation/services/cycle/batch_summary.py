"""
Batch summary returned by scheduled processors.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any


@dataclass
class BatchSummary:
    """
    Aggregate outcome of one batch tick.

    Per-item failures are collected here and never abort the batch.
    """

    business_date: date
    processed_count: int = 0
    total_amount: Decimal = Decimal("0")
    skip_reasons: Counter = field(default_factory=Counter)
    failures: list[dict[str, Any]] = field(default_factory=list)
    skipped: str | None = None

    def add_processed(self, amount: Decimal) -> None:
        self.processed_count += 1
        self.total_amount += amount

    def add_skip(self, reason: str) -> None:
        self.skip_reasons[reason] += 1

    def add_failure(self, item_id: int, error: Exception) -> None:
        self.failures.append({"id": item_id, "error": str(error)})

    def to_dict(self) -> dict[str, Any]:
        """Serializable form for job results and logs."""
        return {
            "business_date": self.business_date.isoformat(),
            "processed_count": self.processed_count,
            "total_amount": str(self.total_amount),
            "skip_reasons": dict(self.skip_reasons),
            "failure_count": len(self.failures),
            "skipped": self.skipped,
        }
