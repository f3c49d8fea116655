from dataclasses import dataclass, field
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from pilgrim_housing.repositories.reservation_repo import ReservationRepository
from pilgrim_housing.repositories.room_repo import RoomRepository
from pilgrim_housing.schemas.reservation import ReservationSnapshot
from pilgrim_housing.schemas.room import OccupancyOut, RoomOccupancyOut, RoomOut
from pilgrim_housing.services import occupancy


async def load_snapshots(session: AsyncSession, **room_filters) -> tuple[list[RoomOut], list[ReservationSnapshot]]:
    rooms = await RoomRepository(session).list_rooms(**room_filters)
    reservations = await ReservationRepository(session).list_approved()
    return (
        [RoomOut.model_validate(r) for r in rooms],
        [ReservationSnapshot.model_validate(r) for r in reservations],
    )


@dataclass
class OccupancyViewModel:
    target_date: date
    rooms: list[RoomOccupancyOut] = field(default_factory=list)

    @classmethod
    async def load(
        cls, session: AsyncSession, target_date: date, building_id: int | None = None
    ) -> "OccupancyViewModel":
        rooms, reservations = await load_snapshots(session, building_id=building_id)
        index = occupancy.compute(target_date, rooms, reservations)

        entries = []
        for room in rooms:
            taken = index.get(room.id, set())
            entries.append(
                RoomOccupancyOut(
                    room_id=room.id,
                    building_id=room.building_id,
                    building_name=room.building_name,
                    room_number=room.room_number,
                    floor=room.floor,
                    status=room.status,
                    bed_capacity=room.bed_capacity,
                    occupied_beds=sorted(taken),
                    free_beds=[b for b in room.bed_labels if b not in taken],
                )
            )
        return cls(target_date=target_date, rooms=entries)

    def to_out(self) -> OccupancyOut:
        return OccupancyOut(
            target_date=self.target_date,
            total_beds=sum(r.bed_capacity for r in self.rooms),
            occupied_beds=sum(len(r.occupied_beds) for r in self.rooms),
            rooms=self.rooms,
        )
