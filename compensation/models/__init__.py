"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from compensation.models.account import Account
from compensation.models.audit_record import AuditRecord
from compensation.models.base import Base
from compensation.models.cap_tracker import CapTracker
from compensation.models.config_document import ConfigDocument
from compensation.models.enums import (
    AccountRole,
    AccountStatus,
    AdminCommandType,
    CapAction,
    CapStatus,
    EntryStatus,
    IncomeType,
    PayerRole,
    PaymentMethod,
    PayoutMode,
    PayoutStatus,
    PositionStatus,
    ProgramType,
)
from compensation.models.ledger_entry import LedgerEntry
from compensation.models.payout_request import PayoutRequest
from compensation.models.position import Position
from compensation.models.renewal_record import RenewalRecord
from compensation.models.transaction import Transaction
from compensation.models.wallet import Wallet

__all__ = [
    # Base
    "Base",
    # Enums
    "AccountRole",
    "AccountStatus",
    "AdminCommandType",
    "CapAction",
    "CapStatus",
    "EntryStatus",
    "IncomeType",
    "PayerRole",
    "PaymentMethod",
    "PayoutMode",
    "PayoutStatus",
    "PositionStatus",
    "ProgramType",
    # Core Models
    "Account",
    "Position",
    "CapTracker",
    "Wallet",
    "LedgerEntry",
    "Transaction",
    "RenewalRecord",
    "AuditRecord",
    "PayoutRequest",
    "ConfigDocument",
]
