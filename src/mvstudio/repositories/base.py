"""Shared async repository plumbing.

Repositories flush but never commit; the route or orchestrator that owns the
session decides when a unit of work is durable.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mvstudio.db.base import Base

T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    def __init__(self, session: AsyncSession, model_class: type[T]):
        self.session = session
        self.model_class = model_class

    async def get_by_id(self, pk_field: str, pk_value: str, *, fresh: bool = False) -> T | None:
        """Load one row by primary key.

        ``fresh=True`` re-reads the row even if the session already holds it,
        which is needed after ``update_where`` or a write from another session.
        """
        stmt = select(self.model_class).where(getattr(self.model_class, pk_field) == pk_value)
        if fresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_field(self, field: str, value: Any) -> list[T]:
        stmt = select(self.model_class).where(getattr(self.model_class, field) == value)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

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

    async def update_where(self, *criteria: Any, **values: Any) -> int:
        """Single conditional UPDATE; returns the number of rows it changed.

        Loaded instances are not synchronized. Re-read with ``fresh=True``.
        """
        stmt = (
            update(self.model_class)
            .where(*criteria)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def delete(self, row: T) -> None:
        await self.session.delete(row)
        await self.session.flush()
