"""
Transaction repository.

Data access layer for Transaction balance snapshots.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from compensation.models.transaction import Transaction
from compensation.repositories.base import BaseRepository


class TransactionRepository(BaseRepository[Transaction]):
    """Transaction repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize transaction repository."""
        super().__init__(Transaction, session)
