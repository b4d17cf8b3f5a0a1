"""
Repositories.

Exports all repository classes.
"""

from compensation.repositories.account_repository import AccountRepository
from compensation.repositories.audit_repository import AuditRepository
from compensation.repositories.base import BaseRepository
from compensation.repositories.cap_tracker_repository import CapTrackerRepository
from compensation.repositories.config_document_repository import (
    ConfigDocumentRepository,
)
from compensation.repositories.ledger_repository import LedgerRepository
from compensation.repositories.payout_repository import PayoutRepository
from compensation.repositories.position_repository import PositionRepository
from compensation.repositories.renewal_repository import RenewalRepository
from compensation.repositories.transaction_repository import TransactionRepository
from compensation.repositories.wallet_repository import WalletRepository

__all__ = [
    "BaseRepository",
    "AccountRepository",
    "AuditRepository",
    "CapTrackerRepository",
    "ConfigDocumentRepository",
    "LedgerRepository",
    "PayoutRepository",
    "PositionRepository",
    "RenewalRepository",
    "TransactionRepository",
    "WalletRepository",
]
