import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from pilgrim_housing.database import transaction
from pilgrim_housing.errors import Conflict, ValidationError
from pilgrim_housing.models.building import Building
from pilgrim_housing.repositories.building_repo import BuildingRepository
from pilgrim_housing.repositories.reservation_repo import ReservationRepository
from pilgrim_housing.repositories.room_repo import RoomRepository
from pilgrim_housing.schemas.building import BuildingCreate, BuildingOut, BuildingUpdate

logger = logging.getLogger(__name__)


def reject_cleared(updates: dict, fields: tuple[str, ...]) -> None:
    """Required columns may be left out of a PATCH but never set to null."""
    cleared = [name for name in fields if name in updates and updates[name] is None]
    if cleared:
        raise ValidationError(
            f"{', '.join(cleared)} cannot be cleared",
            details={"fields": cleared},
        )


def _clean_name(name: str | None) -> str | None:
    if name is None:
        return None
    name = name.strip()
    if not name:
        raise ValidationError("Building name is required", details={"field": "name"})
    return name


async def ensure_rooms_vacant(session: AsyncSession, room_ids: list[int], what: str) -> None:
    """Refuse to remove rooms that still hold a live bed assignment."""
    live = await ReservationRepository(session).live_assignments(room_ids, datetime.now())
    if live:
        beds = sorted({f"{m.room_number}/{m.bed_label}" for m in live})
        raise Conflict(
            f"Cannot delete {what}: {len(live)} bed assignment(s) are still active",
            details={"beds": beds},
        )


@dataclass
class BuildingListViewModel:
    buildings: list[BuildingOut] = field(default_factory=list)

    @classmethod
    async def load(cls, session: AsyncSession) -> "BuildingListViewModel":
        repo = BuildingRepository(session)
        rows = await repo.get_all_with_stats()
        buildings = [
            BuildingOut.model_validate(row["building"]).model_copy(
                update={"room_count": row["room_count"], "bed_count": row["bed_count"]}
            )
            for row in rows
        ]
        return cls(buildings=buildings)


@dataclass
class BuildingDetailViewModel:
    building: Building | None = None

    @classmethod
    async def load(cls, session: AsyncSession, building_id: int) -> "BuildingDetailViewModel":
        repo = BuildingRepository(session)
        return cls(building=await repo.get_or_raise(building_id))

    @classmethod
    async def create_building(cls, session: AsyncSession, data: BuildingCreate) -> Building:
        repo = BuildingRepository(session)
        async with transaction(session):
            building = await repo.create(**data.model_dump() | {"name": _clean_name(data.name)})
        logger.info("Created building %s (%s)", building.id, building.name)
        return building

    @classmethod
    async def update_building(cls, session: AsyncSession, building_id: int, data: BuildingUpdate) -> Building:
        repo = BuildingRepository(session)
        await repo.get_or_raise(building_id)
        updates = data.model_dump(exclude_unset=True)
        reject_cleared(updates, ("name", "total_floors", "status"))
        if "name" in updates:
            updates["name"] = _clean_name(updates["name"])
        async with transaction(session):
            building = await repo.update(building_id, **updates)
        return building

    @classmethod
    async def delete_building(cls, session: AsyncSession, building_id: int) -> bool:
        """Delete the building together with all of its rooms."""
        repo = BuildingRepository(session)
        room_repo = RoomRepository(session)
        building = await repo.get_or_raise(building_id)

        room_ids = await room_repo.ids_for_building(building_id)
        await ensure_rooms_vacant(session, room_ids, f"building {building.name}")

        async with transaction(session):
            await ReservationRepository(session).release_rooms(room_ids)
            removed = await room_repo.delete_for_building(building_id)
            result = await repo.delete(building_id)
        logger.info("Deleted building %s with %d rooms", building_id, removed)
        return result
