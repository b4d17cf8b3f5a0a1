"""
Base repository.

Shared lookups and inserts for the per-model repositories.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from compensation.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Model-bound repository over a caller-owned session.

    Methods flush but never commit; the service running the unit of work
    decides when it ends.
    """

    def __init__(self, model: type[ModelType], session: AsyncSession) -> None:
        self.model = model
        self.session = session

    async def get_by_id(self, id: int) -> ModelType | None:
        """Load a row by primary key (identity map first)."""
        return await self.session.get(self.model, id)

    async def get_by(self, **filters: Any) -> ModelType | None:
        """
        Load the single row matching column equality filters.

        Args:
            **filters: Column name to value

        Returns:
            Matching row or None
        """
        result = await self.session.execute(
            select(self.model).filter_by(**filters)
        )
        return result.scalar_one_or_none()

    async def create(self, **data: Any) -> ModelType:
        """Insert a row and flush so its primary key is assigned."""
        entity = self.model(**data)
        self.session.add(entity)
        await self.session.flush()
        return entity
