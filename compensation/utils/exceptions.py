"""
Exception types for the compensation engine.

Expected business outcomes of the referral distributor (leader exclusion,
already processed, anti-abuse) are NOT exceptions: they are returned as
DistributionResult reason codes.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.exc import IntegrityError, OperationalError


class CompensationError(Exception):
    """Base class for all engine errors."""

    code = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(CompensationError):
    """Malformed or missing input. Raised before any mutation."""

    code = "validation_error"


class NotFoundError(ValidationError):
    """Referenced account, position or wallet does not exist."""

    code = "not_found"


class PermissionDenied(CompensationError):
    """Caller lacks the role or relationship required for the action."""

    code = "permission_denied"


class InsufficientFunds(CompensationError):
    """Debit exceeds the available balance."""

    code = "insufficient_funds"

    def __init__(self, requested: Decimal, available: Decimal) -> None:
        super().__init__(
            f"Insufficient balance: requested {requested}, available {available}"
        )
        self.requested = requested
        self.available = available


@dataclass(frozen=True)
class CapRejection:
    """Outbound explanation of a refused credit."""

    reason: str
    cap_status: str
    earnings_total: Decimal
    cap_amount: Decimal


class CapExceeded(CompensationError):
    """A credit would breach a cap that stops earnings."""

    code = "cap_exceeded"

    def __init__(
        self,
        reason: str,
        cap_status: str,
        earnings_total: Decimal,
        cap_amount: Decimal,
        ledger_entry_id: int | None = None,
    ) -> None:
        super().__init__(reason)
        self.reason = reason
        self.cap_status = cap_status
        self.earnings_total = earnings_total
        self.cap_amount = cap_amount
        self.ledger_entry_id = ledger_entry_id

    def to_rejection(self) -> CapRejection:
        return CapRejection(
            reason=self.reason,
            cap_status=self.cap_status,
            earnings_total=self.earnings_total,
            cap_amount=self.cap_amount,
        )


class DuplicateEntry(CompensationError):
    """An entry with the same idempotency key was already posted."""

    code = "duplicate_entry"

    def __init__(self, idempotency_key: str) -> None:
        super().__init__(f"Entry already posted: {idempotency_key}")
        self.idempotency_key = idempotency_key


class TransientError(CompensationError):
    """Storage conflict; safe to retry."""

    code = "transient"


# Exception categories based on handling strategy

# Retry the whole unit of work
RETRYABLE = (
    OperationalError,  # Serialization failures, dropped connections
    TransientError,
)

# Surface to the caller synchronously with a reason code
MUST_RAISE = (
    ValidationError,
    PermissionDenied,
    InsufficientFunds,
    CapExceeded,
)


def is_retryable(exc: Exception) -> bool:
    """
    Check if exception may be retried.

    Args:
        exc: Exception to check

    Returns:
        True if the failed unit of work can be re-run
    """
    return isinstance(exc, RETRYABLE)


def must_raise(exc: Exception) -> bool:
    """
    Check if exception must be raised to the caller.

    Args:
        exc: Exception to check

    Returns:
        True if exception must be raised
    """
    return isinstance(exc, MUST_RAISE)


def is_unique_violation(exc: IntegrityError, constraint: str | None = None) -> bool:
    """
    Check if an IntegrityError was caused by a unique constraint.

    Args:
        exc: IntegrityError raised by flush/commit
        constraint: Optional constraint or column name to match

    Returns:
        True if it is a unique violation (on the given constraint)
    """
    text = str(getattr(exc, "orig", exc)).lower()
    if "unique" not in text and "duplicate" not in text:
        return False
    return constraint is None or constraint.lower() in text
