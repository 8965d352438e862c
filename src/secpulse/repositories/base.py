"""Base repository with the CRUD the sync pipeline needs."""

from typing import Any, TypeVar

from sqlalchemy import Select, delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from secpulse.db.base import Base

T = TypeVar("T", bound=Base)


class BaseRepository:
    """Generic async repository for SQLAlchemy models.

    Writes only flush; the caller owns the session and commits.
    """

    def __init__(self, session: AsyncSession, model_class: type[T]):
        self.session = session
        self.model_class = model_class

    async def get_by_id(self, pk_field: str, pk_value: str) -> T | None:
        stmt = select(self.model_class).where(getattr(self.model_class, pk_field) == pk_value)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, **kwargs: Any) -> T:
        row = self.model_class(**kwargs)
        self.session.add(row)
        await self.session.flush()
        return row

    async def update(self, row: T, **kwargs: Any) -> T:
        for key, value in kwargs.items():
            setattr(row, key, value)
        await self.session.flush()
        return row

    async def fetch_all(self, stmt: Select) -> list[T]:
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_where(self, *conditions) -> int:
        """Bulk delete matching rows. Returns the number deleted."""
        result = await self.session.execute(delete(self.model_class).where(*conditions))
        return result.rowcount or 0
