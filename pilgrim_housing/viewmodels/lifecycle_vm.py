import logging
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from pilgrim_housing.database import transaction
from pilgrim_housing.models.room import Room
from pilgrim_housing.repositories.reservation_repo import ReservationRepository
from pilgrim_housing.repositories.room_repo import RoomRepository
from pilgrim_housing.schemas.reservation import ReservationSnapshot
from pilgrim_housing.schemas.room import LifecycleAction, RoomStatus
from pilgrim_housing.services import occupancy
from pilgrim_housing.services.lifecycle import apply_action, reevaluate

logger = logging.getLogger(__name__)


class RoomLifecycleViewModel:
    @classmethod
    async def transition(
        cls, session: AsyncSession, room_id: int, action: LifecycleAction, note: str | None = None
    ) -> Room:
        repo = RoomRepository(session)
        room = await repo.get_or_raise(room_id)
        async with transaction(session):
            apply_action(room, action, note)
            if room.status == RoomStatus.AVAILABLE:
                await cls._reevaluate(session, room)
        return room

    @classmethod
    async def mark_cleaned(cls, session: AsyncSession, room_id: int) -> Room:
        return await cls.transition(session, room_id, LifecycleAction.MARK_CLEANED)

    @staticmethod
    async def _reevaluate(session: AsyncSession, room: Room) -> None:
        # guests still in house keep the room occupied once it is back in service
        reservations = await ReservationRepository(session).list_approved()
        snapshots = [ReservationSnapshot.model_validate(r) for r in reservations]
        today = occupancy.compute(date.today(), [room], snapshots)
        status = reevaluate(room.status, len(today.get(room.id, ())))
        if status != room.status:
            logger.info("Room %s re-evaluated: %s -> %s", room.id, room.status, status)
            room.status = status
