"""
Config document repository.

Data access layer for ConfigDocument model.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from compensation.models.config_document import ConfigDocument
from compensation.repositories.base import BaseRepository


class ConfigDocumentRepository(BaseRepository[ConfigDocument]):
    """Config document repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize config document repository."""
        super().__init__(ConfigDocument, session)

    async def get_latest(self) -> ConfigDocument | None:
        """
        Get the most recently published document.

        Returns:
            Latest document or None if nothing was published
        """
        stmt = (
            select(ConfigDocument)
            .order_by(ConfigDocument.version.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_max_version(self) -> int:
        """
        Get the highest published version.

        Returns:
            Highest version, 0 if none
        """
        stmt = select(func.coalesce(func.max(ConfigDocument.version), 0))
        result = await self.session.execute(stmt)
        return int(result.scalar() or 0)
