"""Interactive assignment of one reservation's members to beds.

An AllocationSession is built fresh for every editing session and only
changes through ``select``, ``assign`` and ``unassign``. Nothing is written
until the caller takes ``commit_plan()`` to the store; dropping the object
discards the session.
"""

import logging
from dataclasses import dataclass
from datetime import date

from pilgrim_housing.errors import CapacityExceeded, Conflict, IncompleteAllocation, RoomUnavailable, ValidationError
from pilgrim_housing.models.room import bed_labels
from pilgrim_housing.schemas.reservation import MemberSnapshot, ReservationSnapshot, StepStatus
from pilgrim_housing.schemas.room import RoomOut
from pilgrim_housing.services.lifecycle import is_allocatable
from pilgrim_housing.services.occupancy import Occupancy, StayWindow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Assignment:
    room_id: int
    room_number: str
    bed_label: str

    def as_values(self) -> dict:
        return {"room_id": self.room_id, "room_number": self.room_number, "bed_label": self.bed_label}


class AllocationSession:
    def __init__(
        self,
        reservation: ReservationSnapshot,
        rooms: list[RoomOut],
        occupied: Occupancy,
        held: Occupancy | None = None,
    ):
        self.reservation = reservation
        self.members: list[MemberSnapshot] = sorted(reservation.members, key=lambda m: m.position)
        self.rooms: dict[int, RoomOut] = {room.id: room for room in rooms if is_allocatable(room.status)}
        self.occupied: Occupancy = {room_id: set(beds) for room_id, beds in occupied.items()}
        self.held: Occupancy = {room_id: set(beds) for room_id, beds in (held or {}).items()}
        self.assignments: dict[int, Assignment] = {}
        self.touched_rooms: set[int] = set()
        # checked-out members keep their position but no longer need a bed
        self.departed: set[int] = {
            index for index, member in enumerate(self.members) if member.checkout_status == StepStatus.COMPLETED
        }

        for index, member in enumerate(self.members):
            if index in self.departed:
                continue
            if member.room_id is not None and member.bed_label:
                self.assignments[index] = Assignment(member.room_id, member.room_number or "", member.bed_label)

        self.selected: int | None = self._next_unassigned(after=-1)

    @property
    def target_date(self) -> date | None:
        return StayWindow.of(self.reservation).start

    @property
    def assigned_count(self) -> int:
        return len(self.assignments)

    @property
    def pending_count(self) -> int:
        return len(self.members) - len(self.departed) - len(self.assignments)

    def session_beds(self, room_id: int, exclude_index: int | None = None) -> set[str]:
        return {
            a.bed_label
            for index, a in self.assignments.items()
            if a.room_id == room_id and index != exclude_index
        }

    def taken_beds(self, room_id: int, exclude_index: int | None = None) -> set[str]:
        return (
            self.occupied.get(room_id, set())
            | self.held.get(room_id, set())
            | self.session_beds(room_id, exclude_index)
        )

    def occupied_count(self, room_id: int) -> int:
        return len(self.taken_beds(room_id))

    def is_full(self, room_id: int) -> bool:
        room = self.rooms.get(room_id)
        return room is None or self.occupied_count(room_id) >= room.bed_capacity

    def select(self, member_index: int) -> None:
        self._check_index(member_index)
        self._check_present(member_index)
        self.selected = member_index

    def assign(self, room_id: int, member_index: int | None = None) -> Assignment:
        """Give the member the first free bed in the room, in label order."""
        index = self.selected if member_index is None else member_index
        if index is None:
            raise ValidationError("Please select a member first")
        self._check_index(index)
        self._check_present(index)

        room = self.rooms.get(room_id)
        if room is None:
            raise RoomUnavailable(room_id)

        taken = self.taken_beds(room_id, exclude_index=index)
        if len(taken) >= room.bed_capacity:
            raise CapacityExceeded(room.room_number, room.bed_capacity)
        label = next((bed for bed in bed_labels(room.bed_capacity) if bed not in taken), None)
        if label is None:
            raise CapacityExceeded(room.room_number, room.bed_capacity)

        previous = self.assignments.get(index)
        if previous is not None:
            self.touched_rooms.add(previous.room_id)
        assignment = Assignment(room.id, room.room_number, label)
        self.assignments[index] = assignment
        self.touched_rooms.add(room.id)
        self.selected = self._next_unassigned(after=index)

        logger.debug("Reservation %s member %d -> room %s bed %s", self.reservation.id, index, room.room_number, label)
        return assignment

    def unassign(self, member_index: int) -> Assignment | None:
        self._check_index(member_index)
        previous = self.assignments.pop(member_index, None)
        if previous is not None:
            self.touched_rooms.add(previous.room_id)
        return previous

    def commit_plan(self) -> dict[int, dict]:
        """Member position -> room/bed values, ready for one batch write."""
        if self.pending_count > 0:
            raise IncompleteAllocation(self.pending_count)
        return {self.members[index].position: a.as_values() for index, a in self.assignments.items()}

    def _check_index(self, member_index: int) -> None:
        if not 0 <= member_index < len(self.members):
            raise ValidationError(
                f"No member at position {member_index}",
                details={"member_index": member_index, "total_members": len(self.members)},
            )

    def _check_present(self, member_index: int) -> None:
        if member_index in self.departed:
            raise ValidationError(
                f"{self.members[member_index].name} has already checked out",
                details={"member_index": member_index},
            )

    def _next_unassigned(self, after: int) -> int | None:
        count = len(self.members)
        for step in range(1, count + 1):
            index = (after + step) % count
            if index not in self.assignments and index not in self.departed:
                return index
        return None


def revalidate(session: AllocationSession, rooms: dict[int, RoomOut], taken: Occupancy) -> None:
    """Check the session's beds against freshly read rooms and occupancy.

    ``taken`` must exclude the session's own reservation. Raises Conflict when a
    concurrent writer has claimed a bed or the room can no longer take guests.
    """
    for room_id in sorted(session.touched_rooms):
        ours = session.session_beds(room_id)
        if not ours:
            continue

        room = rooms.get(room_id)
        if room is None or not is_allocatable(room.status):
            raise Conflict(
                f"Room {room.room_number if room else room_id} is no longer available",
                details={"room_id": room_id},
            )

        others = taken.get(room_id, set())
        clash = sorted(ours & others)
        if clash:
            raise Conflict(
                f"Bed {', '.join(clash)} in room {room.room_number} was taken by another reservation",
                details={"room_id": room_id, "beds": clash},
            )

        outside = sorted(ours - set(bed_labels(room.bed_capacity)))
        if outside or len(ours | others) > room.bed_capacity:
            raise Conflict(
                f"Room {room.room_number} no longer has room for {len(ours)} more",
                details={"room_id": room_id, "bed_capacity": room.bed_capacity, "beds": sorted(ours)},
            )
