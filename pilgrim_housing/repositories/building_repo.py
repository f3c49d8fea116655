from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pilgrim_housing.models.building import Building
from pilgrim_housing.models.room import Room
from pilgrim_housing.repositories.base import BaseRepository


class BuildingRepository(BaseRepository[Building]):
    label = "Building"

    def __init__(self, session: AsyncSession):
        super().__init__(session, Building)

    async def get_all_with_stats(self) -> list[dict]:
        stmt = (
            select(
                Building,
                func.count(Room.id).label("room_count"),
                func.coalesce(func.sum(Room.bed_capacity), 0).label("bed_count"),
            )
            .outerjoin(Room, Building.id == Room.building_id)
            .group_by(Building.id)
            .order_by(Building.name)
        )
        result = await self.session.execute(stmt)
        rows = result.all()
        return [
            {"building": row[0], "room_count": row[1], "bed_count": int(row[2])}
            for row in rows
        ]
