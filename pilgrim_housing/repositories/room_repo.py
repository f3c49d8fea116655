from collections.abc import Iterable

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pilgrim_housing.models.room import Room
from pilgrim_housing.repositories.base import BaseRepository
from pilgrim_housing.schemas.room import RoomStatus


class RoomRepository(BaseRepository[Room]):
    label = "Room"

    def __init__(self, session: AsyncSession):
        super().__init__(session, Room)

    async def get_with_building(self, room_id: int) -> Room | None:
        stmt = select(Room).options(selectinload(Room.building)).where(Room.id == room_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_number(self, building_id: int, room_number: str) -> Room | None:
        stmt = select(Room).where(Room.building_id == building_id, Room.room_number == room_number)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_rooms(
        self,
        building_id: int | None = None,
        floor: int | None = None,
        status: RoomStatus | None = None,
        statuses: Iterable[RoomStatus] | None = None,
        room_ids: Iterable[int] | None = None,
    ) -> list[Room]:
        stmt = select(Room).options(selectinload(Room.building))

        if building_id is not None:
            stmt = stmt.where(Room.building_id == building_id)
        if floor is not None:
            stmt = stmt.where(Room.floor == floor)
        if status is not None:
            stmt = stmt.where(Room.status == status)
        if statuses is not None:
            stmt = stmt.where(Room.status.in_(list(statuses)))
        if room_ids is not None:
            stmt = stmt.where(Room.id.in_(list(room_ids)))

        stmt = stmt.order_by(Room.building_id, Room.floor, Room.room_number)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def existing_numbers(self, building_id: int, room_numbers: Iterable[str]) -> list[str]:
        stmt = (
            select(Room.room_number)
            .where(Room.building_id == building_id, Room.room_number.in_(list(room_numbers)))
            .order_by(Room.room_number)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def ids_for_building(self, building_id: int) -> list[int]:
        stmt = select(Room.id).where(Room.building_id == building_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_for_building(self, building_id: int) -> int:
        stmt = delete(Room).where(Room.building_id == building_id)
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount
