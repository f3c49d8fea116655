from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pilgrim_housing.errors import NotFound
from pilgrim_housing.models.reservation import Reservation, ReservationMember
from pilgrim_housing.repositories.base import BaseRepository
from pilgrim_housing.schemas.reservation import ReservationStatus, StepStatus

ACTIVE_STATUSES = (ReservationStatus.APPROVED, ReservationStatus.CONFIRMED)

_ASSIGNMENT_FIELDS = ("room_id", "room_number", "bed_label")


class ReservationRepository(BaseRepository[Reservation]):
    label = "Reservation"

    def __init__(self, session: AsyncSession):
        super().__init__(session, Reservation)

    async def get_with_members(self, reservation_id: int) -> Reservation | None:
        stmt = (
            select(Reservation)
            .options(selectinload(Reservation.members))
            .where(Reservation.id == reservation_id)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_approved(self) -> list[Reservation]:
        stmt = (
            select(Reservation)
            .options(selectinload(Reservation.members))
            .where(Reservation.status.in_(ACTIVE_STATUSES))
            .order_by(Reservation.arrival_at, Reservation.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update_members(
        self, reservation_id: int, assignments: Mapping[int, Mapping[str, Any]]
    ) -> Reservation:
        """Write room/bed fields for several members of one reservation.

        ``assignments`` maps member position to ``room_id``/``room_number``/``bed_label``
        values; positions not present are cleared and checked-out members are left
        alone. Only flushes, the caller owns the transaction so the whole batch
        lands or none of it does.
        """
        reservation = await self.get_with_members(reservation_id)
        if reservation is None:
            raise NotFound(self.label, reservation_id)

        for member in reservation.members:
            if member.checkout_status == StepStatus.COMPLETED:
                continue
            values = assignments.get(member.position) or {}
            for name in _ASSIGNMENT_FIELDS:
                setattr(member, name, values.get(name))

        await self.session.flush()
        return reservation

    async def live_assignments(self, room_ids: Iterable[int], now: datetime) -> list[ReservationMember]:
        """Members still holding a bed in any of ``room_ids``."""
        ids = list(room_ids)
        if not ids:
            return []
        stmt = (
            select(ReservationMember)
            .join(Reservation, Reservation.id == ReservationMember.reservation_id)
            .where(
                ReservationMember.room_id.in_(ids),
                ReservationMember.bed_label.is_not(None),
                ReservationMember.checkout_status != StepStatus.COMPLETED,
                Reservation.status.in_(ACTIVE_STATUSES),
                or_(Reservation.departure_at.is_(None), Reservation.departure_at > now),
            )
            .order_by(ReservationMember.room_id, ReservationMember.bed_label)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def release_rooms(self, room_ids: Iterable[int]) -> None:
        ids = list(room_ids)
        if not ids:
            return
        stmt = (
            update(ReservationMember)
            .where(ReservationMember.room_id.in_(ids))
            .values(room_id=None, room_number=None, bed_label=None)
        )
        await self.session.execute(stmt)
        await self.session.flush()

    async def rename_room(self, room_id: int, room_number: str) -> None:
        stmt = (
            update(ReservationMember)
            .where(ReservationMember.room_id == room_id)
            .values(room_number=room_number)
        )
        await self.session.execute(stmt)
        await self.session.flush()
