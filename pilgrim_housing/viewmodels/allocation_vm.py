import logging
import uuid
from collections import OrderedDict
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from pilgrim_housing.database import transaction
from pilgrim_housing.errors import Conflict, NotFound, ValidationError
from pilgrim_housing.repositories.reservation_repo import ReservationRepository
from pilgrim_housing.repositories.room_repo import RoomRepository
from pilgrim_housing.schemas.allocation import AllocationMemberOut, AllocationOut, AllocationRoomOut, CommitOut
from pilgrim_housing.schemas.reservation import ReservationSnapshot
from pilgrim_housing.services import occupancy
from pilgrim_housing.services.allocation import AllocationSession, revalidate
from pilgrim_housing.services.lifecycle import is_allocatable, reevaluate
from pilgrim_housing.services.occupancy import StayWindow
from pilgrim_housing.viewmodels.occupancy_vm import load_snapshots

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Open allocation sessions of one application instance, oldest evicted first."""

    def __init__(self, max_sessions: int = 200):
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[str, AllocationSession] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def add(self, allocation: AllocationSession) -> str:
        session_id = uuid.uuid4().hex
        self._sessions[session_id] = allocation
        while len(self._sessions) > self.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.info("Evicted allocation session %s", evicted)
        return session_id

    def get(self, session_id: str) -> AllocationSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise NotFound("Allocation session", session_id) from None

    def discard(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None


class AllocationViewModel:
    @classmethod
    async def open(cls, session: AsyncSession, reservation_id: int) -> AllocationSession:
        """Read rooms and occupancy once and start a fresh session for the reservation."""
        reservation = await ReservationRepository(session).get_with_members(reservation_id)
        if reservation is None:
            raise NotFound("Reservation", reservation_id)
        snapshot = ReservationSnapshot.model_validate(reservation)
        if snapshot.status not in occupancy.ACTIVE_STATUSES:
            raise ValidationError(
                f"Reservation {reservation_id} is {snapshot.status}, only approved or confirmed ones get beds",
                details={"status": snapshot.status},
            )

        rooms, reservations = await load_snapshots(session)
        rooms = [r for r in rooms if is_allocatable(r.status)]
        window = StayWindow.of(snapshot)
        occupied = occupancy.compute(window.start, rooms, reservations, exclude_reservation_id=reservation_id)
        held = occupancy.compute_holds(window, rooms, reservations, exclude_reservation_id=reservation_id)

        logger.info("Opened allocation for reservation %s (%d members)", reservation_id, len(snapshot.members))
        return AllocationSession(snapshot, rooms, occupied, held)

    @classmethod
    async def commit(cls, session: AsyncSession, allocation: AllocationSession) -> CommitOut:
        """Persist every member's bed in one write after re-checking against fresh data."""
        plan = allocation.commit_plan()
        reservation_id = allocation.reservation.id

        reservation = await ReservationRepository(session).get_with_members(reservation_id)
        if reservation is None:
            raise NotFound("Reservation", reservation_id)
        fresh = ReservationSnapshot.model_validate(reservation)
        if fresh.status not in occupancy.ACTIVE_STATUSES:
            raise Conflict(f"Reservation {reservation_id} is now {fresh.status}", details={"status": fresh.status})
        if sorted(m.position for m in fresh.members) != sorted(m.position for m in allocation.members):
            raise Conflict("Reservation members changed since allocation started, reload and retry")

        rooms, reservations = await load_snapshots(session)
        window = StayWindow.of(fresh)
        taken = occupancy.merge(
            occupancy.compute(window.start, rooms, reservations, exclude_reservation_id=reservation_id),
            occupancy.compute_holds(window, rooms, reservations, exclude_reservation_id=reservation_id),
        )
        try:
            revalidate(allocation, {r.id: r for r in rooms}, taken)
        except Conflict:
            logger.warning("Allocation commit for reservation %s rejected by re-validation", reservation_id)
            raise

        room_repo = RoomRepository(session)
        async with transaction(session):
            updated = await ReservationRepository(session).update_members(reservation_id, plan)
            await cls._reevaluate_rooms(room_repo, allocation.touched_rooms, reservations, updated)

        logger.info(
            "Committed %d bed assignments for reservation %s across rooms %s",
            len(plan), reservation_id, sorted(allocation.touched_rooms),
        )
        return CommitOut(
            reservation_id=reservation_id,
            assigned=len(plan),
            touched_rooms=sorted(allocation.touched_rooms),
        )

    @staticmethod
    async def _reevaluate_rooms(room_repo, room_ids, reservations, updated) -> None:
        if not room_ids:
            return
        rooms = await room_repo.list_rooms(room_ids=room_ids)
        others = [r for r in reservations if r.id != updated.id]
        today = occupancy.compute(
            date.today(),
            rooms,
            others + [ReservationSnapshot.model_validate(updated)],
        )
        for room in rooms:
            status = reevaluate(room.status, len(today.get(room.id, ())))
            if status != room.status:
                logger.info("Room %s re-evaluated: %s -> %s", room.id, room.status, status)
                room.status = status

    @staticmethod
    def to_out(session_id: str, allocation: AllocationSession) -> AllocationOut:
        members = []
        for index, member in enumerate(allocation.members):
            assignment = allocation.assignments.get(index)
            members.append(
                AllocationMemberOut(
                    index=index,
                    member_id=member.id,
                    name=member.name,
                    room_id=assignment.room_id if assignment else None,
                    room_number=assignment.room_number if assignment else None,
                    bed_label=assignment.bed_label if assignment else None,
                    checked_out=index in allocation.departed,
                )
            )
        rooms = [
            AllocationRoomOut(
                room_id=room.id,
                building_id=room.building_id,
                building_name=room.building_name,
                room_number=room.room_number,
                floor=room.floor,
                status=room.status,
                bed_capacity=room.bed_capacity,
                occupied_count=allocation.occupied_count(room.id),
                is_full=allocation.is_full(room.id),
            )
            for room in allocation.rooms.values()
        ]
        return AllocationOut(
            session_id=session_id,
            reservation_id=allocation.reservation.id,
            target_date=allocation.target_date,
            selected=allocation.selected,
            total_members=len(allocation.members),
            assigned_count=allocation.assigned_count,
            pending_count=allocation.pending_count,
            members=members,
            rooms=rooms,
        )
