from collections.abc import Iterable
from typing import Any, Generic, TypeVar

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from pilgrim_housing.errors import NotFound
from pilgrim_housing.models.base import Base

T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    label = "Record"

    def __init__(self, session: AsyncSession, model: type[T]):
        self.session = session
        self.model = model

    async def get(self, id: int) -> T | None:
        return await self.session.get(self.model, id)

    async def get_or_raise(self, id: int) -> T:
        obj = await self.get(id)
        if obj is None:
            raise NotFound(self.label, id)
        return obj

    async def create(self, **kwargs: Any) -> T:
        obj = self.model(**kwargs)
        self.session.add(obj)
        await self.session.flush()
        await self.session.refresh(obj)
        return obj

    async def create_many(self, rows: Iterable[dict[str, Any]]) -> list[T]:
        objs = [self.model(**row) for row in rows]
        self.session.add_all(objs)
        await self.session.flush()
        return objs

    async def update(self, id: int, **kwargs: Any) -> T | None:
        """Write exactly the given fields; an explicit None clears the column."""
        if not kwargs:
            return await self.get(id)
        stmt = update(self.model).where(self.model.id == id).values(**kwargs)
        await self.session.execute(stmt)
        await self.session.flush()
        obj = await self.get(id)
        if obj is not None:
            await self.session.refresh(obj)
        return obj

    async def delete(self, id: int) -> bool:
        stmt = delete(self.model).where(self.model.id == id)
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0
