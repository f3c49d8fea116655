import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from pilgrim_housing.database import transaction
from pilgrim_housing.errors import NotFound, ValidationError
from pilgrim_housing.models.reservation import Reservation, ReservationMember
from pilgrim_housing.repositories.reservation_repo import ACTIVE_STATUSES, ReservationRepository
from pilgrim_housing.repositories.room_repo import RoomRepository
from pilgrim_housing.schemas.reservation import MemberSnapshot, ReservationSnapshot, StepStatus
from pilgrim_housing.schemas.room import LifecycleAction
from pilgrim_housing.services.lifecycle import apply_action

logger = logging.getLogger(__name__)


async def _load_member(session: AsyncSession, reservation_id: int, member_index: int) -> tuple[Reservation, ReservationMember]:
    reservation = await ReservationRepository(session).get_with_members(reservation_id)
    if reservation is None:
        raise NotFound("Reservation", reservation_id)
    if not 0 <= member_index < len(reservation.members):
        raise NotFound("Member", f"{reservation_id}/{member_index}")
    return reservation, reservation.members[member_index]


class ReservationViewModel:
    @classmethod
    async def list_approved(cls, session: AsyncSession) -> list[ReservationSnapshot]:
        reservations = await ReservationRepository(session).list_approved()
        return [ReservationSnapshot.model_validate(r) for r in reservations]

    @classmethod
    async def check_in(cls, session: AsyncSession, reservation_id: int, member_index: int) -> MemberSnapshot:
        """Mark the member as arrived and move their room along the lifecycle."""
        reservation, member = await _load_member(session, reservation_id, member_index)
        if member.checkin_status == StepStatus.COMPLETED:
            return MemberSnapshot.model_validate(member)
        if reservation.status not in ACTIVE_STATUSES:
            raise ValidationError(
                f"Reservation {reservation_id} is {reservation.status}, cannot check in",
                details={"status": reservation.status},
            )
        if member.room_id is None or not member.bed_label:
            raise ValidationError(
                f"{member.name} has no bed assigned yet",
                details={"member_index": member_index},
            )

        room = await RoomRepository(session).get_or_raise(member.room_id)
        async with transaction(session):
            apply_action(room, LifecycleAction.CHECK_IN)
            member.checkin_status = StepStatus.COMPLETED
            member.checked_in_at = datetime.now()
        logger.info(
            "Checked in %s (reservation %s) to room %s bed %s",
            member.name, reservation_id, member.room_number, member.bed_label,
        )
        return MemberSnapshot.model_validate(member)

    @classmethod
    async def check_out(cls, session: AsyncSession, reservation_id: int, member_index: int) -> MemberSnapshot:
        """Mark the member as departed, free their bed and queue the room for cleaning."""
        _, member = await _load_member(session, reservation_id, member_index)
        if member.checkout_status == StepStatus.COMPLETED:
            return MemberSnapshot.model_validate(member)
        if member.checkin_status != StepStatus.COMPLETED:
            raise ValidationError(
                f"{member.name} has not checked in",
                details={"member_index": member_index},
            )

        # the room may have been deleted since, leaving only the member record
        room = await RoomRepository(session).get(member.room_id) if member.room_id is not None else None
        async with transaction(session):
            if room is not None:
                apply_action(room, LifecycleAction.CHECK_OUT)
            member.checkout_status = StepStatus.COMPLETED
            member.checked_out_at = datetime.now()
            member.room_id = None
            member.room_number = None
            member.bed_label = None
        logger.info("Checked out %s (reservation %s)", member.name, reservation_id)
        return MemberSnapshot.model_validate(member)
