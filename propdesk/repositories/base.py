"""
Base repository with common CRUD operations.
"""

from typing import TypeVar, Generic, Type
from uuid import UUID
from sqlalchemy import Select, select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession

from propdesk.models.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """
    Base repository providing common CRUD operations.

    Usage:
        class UserRepository(BaseRepository[User]):
            model = User

        repo = UserRepository(db)
        user = await repo.get_by_id(user_id)
    """

    model: Type[ModelT]

    def __init__(self, db: AsyncSession):
        self.db = db

    def _base_query(self) -> Select:
        """Base query - override to add default filters or eager loads."""
        return select(self.model)

    def _filtered(self, stmt: Select, filters: dict) -> Select:
        for field, value in filters.items():
            stmt = stmt.where(getattr(self.model, field) == value)
        return stmt

    async def get_by_id(self, id: UUID | str) -> ModelT | None:
        """Get entity by ID."""
        if isinstance(id, str):
            id = UUID(id)
        stmt = self._base_query().where(self.model.id == id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_one(self, **filters) -> ModelT | None:
        """Get single entity by filters."""
        stmt = self._filtered(self._base_query(), filters)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def exists(self, **filters) -> bool:
        """Check if entity exists."""
        return await self.count(**filters) > 0

    async def count(self, **filters) -> int:
        """Count entities matching filters."""
        stmt = self._filtered(select(func.count()).select_from(self.model), filters)
        return await self.db.scalar(stmt) or 0

    async def create(self, **data) -> ModelT:
        """Create new entity."""
        entity = self.model(**data)
        self.db.add(entity)
        await self.db.flush()
        await self.db.refresh(entity)
        return entity

    async def delete_many(self, **filters) -> int:
        """Delete multiple entities matching filters (hard delete)."""
        stmt = delete(self.model)
        for field, value in filters.items():
            stmt = stmt.where(getattr(self.model, field) == value)
        result = await self.db.execute(stmt)
        return result.rowcount
