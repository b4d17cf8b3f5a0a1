"""
Renewal repository.

Data access layer for RenewalRecord model.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from compensation.models.renewal_record import RenewalRecord
from compensation.repositories.base import BaseRepository


class RenewalRepository(BaseRepository[RenewalRecord]):
    """Renewal record repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize renewal repository."""
        super().__init__(RenewalRecord, session)
