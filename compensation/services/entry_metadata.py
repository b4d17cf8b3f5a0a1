"""
Ledger entry metadata.

Shared by the ledger, the cap evaluator and every caller that posts.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class EntryMetadata:
    """
    Matching metadata attached to a ledger entry.

    The named fields are stored as columns and drive idempotency and cap
    decisions. ``extra`` is free-form context kept in the JSON details.
    """

    source_account_id: int | None = None
    level: int | None = None
    # None means "use the configured default"
    counts_toward_cap: bool | None = None
    position_id: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)


NO_METADATA = EntryMetadata()
