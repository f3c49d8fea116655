import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from pilgrim_housing.config import settings
from pilgrim_housing.database import transaction
from pilgrim_housing.errors import Conflict, NotFound, ValidationError
from pilgrim_housing.models.room import Room, bed_labels
from pilgrim_housing.repositories.building_repo import BuildingRepository
from pilgrim_housing.repositories.reservation_repo import ReservationRepository
from pilgrim_housing.repositories.room_repo import RoomRepository
from pilgrim_housing.schemas.room import (
    BulkPreviewOut,
    BulkRoomCreate,
    RoomCreate,
    RoomOut,
    RoomSpecOut,
    RoomStatus,
    RoomUpdate,
)
from pilgrim_housing.services.bulk_spec import RoomSpec, parse_bulk_spec
from pilgrim_housing.viewmodels.building_vm import ensure_rooms_vacant, reject_cleared

logger = logging.getLogger(__name__)

# statuses a room may be created in; occupied/cleaning only arise from guests
INITIAL_STATUSES = (RoomStatus.AVAILABLE, RoomStatus.MAINTENANCE, RoomStatus.BLOCKED)


def _clean_number(room_number: str) -> str:
    room_number = room_number.strip()
    if not room_number:
        raise ValidationError("Room number is required", details={"field": "room_number"})
    return room_number


def _check_initial_status(status: RoomStatus) -> None:
    if status not in INITIAL_STATUSES:
        raise ValidationError(
            f"Rooms cannot be created as {status}",
            details={"status": status, "allowed": [s.value for s in INITIAL_STATUSES]},
        )


@dataclass
class RoomListViewModel:
    rooms: list[RoomOut] = field(default_factory=list)

    @classmethod
    async def load(
        cls,
        session: AsyncSession,
        building_id: int | None = None,
        floor: int | None = None,
        status: RoomStatus | None = None,
    ) -> "RoomListViewModel":
        repo = RoomRepository(session)
        rooms = await repo.list_rooms(building_id=building_id, floor=floor, status=status)
        return cls(rooms=[RoomOut.model_validate(r) for r in rooms])

    @classmethod
    async def housekeeping(cls, session: AsyncSession) -> "RoomListViewModel":
        return await cls.load(session, status=RoomStatus.CLEANING)


@dataclass
class RoomDetailViewModel:
    room: RoomOut | None = None

    @classmethod
    async def load(cls, session: AsyncSession, room_id: int) -> "RoomDetailViewModel":
        repo = RoomRepository(session)
        room = await repo.get_with_building(room_id)
        if room is None:
            raise NotFound("Room", room_id)
        return cls(room=RoomOut.model_validate(room))

    @classmethod
    async def create_room(cls, session: AsyncSession, data: RoomCreate) -> Room:
        repo = RoomRepository(session)
        building = await BuildingRepository(session).get(data.building_id)
        if building is None:
            raise ValidationError("Building is required", details={"building_id": data.building_id})
        _check_initial_status(data.status)

        room_number = _clean_number(data.room_number)
        if await repo.get_by_number(data.building_id, room_number):
            raise ValidationError(
                f"Room {room_number} already exists in {building.name}",
                details={"room_number": room_number},
            )

        async with transaction(session):
            room = await repo.create(**data.model_dump() | {"room_number": room_number})
        logger.info("Created room %s in building %s", room.room_number, building.id)
        return room

    @classmethod
    def preview_bulk(cls, spec: str) -> BulkPreviewOut:
        specs = parse_bulk_spec(spec, max_rooms=settings.bulk_max_rooms)
        return BulkPreviewOut(
            count=len(specs),
            total_beds=sum(s.bed_capacity for s in specs),
            rooms=[RoomSpecOut.model_validate(s) for s in specs],
        )

    @classmethod
    async def create_rooms_bulk(cls, session: AsyncSession, building_id: int, data: BulkRoomCreate) -> list[Room]:
        """All rooms described by ``data.spec`` are created, or none are."""
        building = await BuildingRepository(session).get(building_id)
        if building is None:
            raise ValidationError("Building is required", details={"building_id": building_id})
        _check_initial_status(data.status)

        specs: list[RoomSpec] = parse_bulk_spec(data.spec, max_rooms=settings.bulk_max_rooms)

        repo = RoomRepository(session)
        existing = await repo.existing_numbers(building_id, [s.room_number for s in specs])
        if existing:
            raise ValidationError(
                f"Rooms already exist in {building.name}: {', '.join(existing)}",
                details={"room_numbers": existing},
            )

        rows = [
            {
                "building_id": building_id,
                "room_number": s.room_number,
                "bed_capacity": s.bed_capacity,
                "floor": data.floor,
                "status": data.status,
                "room_type": data.room_type,
            }
            for s in specs
        ]
        async with transaction(session):
            rooms = await repo.create_many(rows)
        logger.info("Bulk created %d rooms in building %s", len(rooms), building_id)
        return rooms

    @classmethod
    async def update_room(cls, session: AsyncSession, room_id: int, data: RoomUpdate) -> Room:
        repo = RoomRepository(session)
        room = await repo.get_or_raise(room_id)
        updates = data.model_dump(exclude_unset=True)
        reject_cleared(updates, ("room_number", "floor", "bed_capacity"))

        if updates.get("room_number") is not None:
            updates["room_number"] = _clean_number(updates["room_number"])
            other = await repo.get_by_number(room.building_id, updates["room_number"])
            if other is not None and other.id != room_id:
                raise ValidationError(
                    f"Room {updates['room_number']} already exists in this building",
                    details={"room_number": updates["room_number"]},
                )

        capacity = updates.get("bed_capacity")
        if capacity is not None and capacity < room.bed_capacity:
            await cls._check_capacity_shrink(session, room, capacity)

        async with transaction(session):
            room = await repo.update(room_id, **updates)
            if "room_number" in updates:
                # keep the denormalised number on assigned members in step
                await ReservationRepository(session).rename_room(room.id, room.room_number)
        return room

    @classmethod
    async def delete_room(cls, session: AsyncSession, room_id: int) -> bool:
        repo = RoomRepository(session)
        room = await repo.get_or_raise(room_id)
        await ensure_rooms_vacant(session, [room_id], f"room {room.room_number}")
        async with transaction(session):
            await ReservationRepository(session).release_rooms([room_id])
            result = await repo.delete(room_id)
        logger.info("Deleted room %s", room_id)
        return result

    @staticmethod
    async def _check_capacity_shrink(session: AsyncSession, room: Room, capacity: int) -> None:
        live = await ReservationRepository(session).live_assignments([room.id], datetime.now())
        labels = set(bed_labels(capacity))
        stranded = sorted({m.bed_label for m in live if m.bed_label not in labels})
        if stranded:
            raise Conflict(
                f"Beds {', '.join(stranded)} in room {room.room_number} are assigned, cannot reduce to {capacity}",
                details={"beds": stranded, "bed_capacity": capacity},
            )
