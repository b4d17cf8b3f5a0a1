"""
Ledger services package.

- ledger_service: posting credits and debits, pending release, transfers
"""

from compensation.services.ledger.ledger_service import (
    CreditResult,
    LedgerService,
    TransferResult,
)


__all__ = [
    "CreditResult",
    "LedgerService",
    "TransferResult",
]
