"""Derive bed occupancy from reservations.

There is no occupancy table: which beds are taken on a given day is always
computed by scanning approved and confirmed reservations. Both functions here
are pure so they can run against freshly read data at commit time.
"""

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime

from pilgrim_housing.schemas.reservation import MemberSnapshot, ReservationSnapshot, ReservationStatus, StepStatus
from pilgrim_housing.schemas.room import RoomOut

ACTIVE_STATUSES = frozenset({ReservationStatus.APPROVED, ReservationStatus.CONFIRMED})

Occupancy = dict[int, set[str]]  # room id -> bed labels


def _day(value: datetime | date | None) -> date | None:
    if value is None:
        return None
    return value.date() if isinstance(value, datetime) else value


@dataclass(frozen=True)
class StayWindow:
    """Half-open [start, end) interval of calendar days."""

    start: date | None
    end: date | None

    @classmethod
    def of(cls, reservation: ReservationSnapshot) -> "StayWindow":
        return cls(_day(reservation.arrival_at), _day(reservation.departure_at))

    @property
    def known(self) -> bool:
        return self.start is not None and self.end is not None

    def contains(self, day: date | None) -> bool:
        # an undeterminable window counts as occupied
        if day is None or not self.known:
            return True
        return self.start <= day < self.end

    def overlaps(self, other: "StayWindow") -> bool:
        if not self.known or not other.known:
            return True
        return self.start < other.end and other.start < self.end


class _RoomResolver:
    def __init__(self, rooms: Iterable[RoomOut]):
        self.ids = set()
        self.by_number: dict[str, list[int]] = defaultdict(list)
        for room in rooms:
            self.ids.add(room.id)
            self.by_number[room.room_number].append(room.id)

    def resolve(self, member: MemberSnapshot) -> list[int]:
        if member.room_id is not None:
            return [member.room_id] if member.room_id in self.ids else []
        # written by number only: every candidate room with that number is taken
        return list(self.by_number.get(member.room_number or "", []))


def _assigned_members(reservations: Iterable[ReservationSnapshot], exclude_reservation_id: int | None):
    for reservation in reservations:
        if reservation.status not in ACTIVE_STATUSES or reservation.id == exclude_reservation_id:
            continue
        window = StayWindow.of(reservation)
        for member in reservation.members:
            if member.has_bed:
                yield window, member


def compute(
    target_date: date | None,
    rooms: Iterable[RoomOut],
    reservations: Iterable[ReservationSnapshot],
    exclude_reservation_id: int | None = None,
) -> Occupancy:
    """Beds occupied on ``target_date`` by members who are checked in and not yet out.

    Only rooms in ``rooms`` are considered. Members whose stay window cannot be
    determined are treated as occupying their bed.
    """
    resolver = _RoomResolver(rooms)
    occupied: Occupancy = {}
    for window, member in _assigned_members(reservations, exclude_reservation_id):
        if not member.in_house or not window.contains(target_date):
            continue
        for room_id in resolver.resolve(member):
            occupied.setdefault(room_id, set()).add(member.bed_label)
    return occupied


def compute_holds(
    window: StayWindow,
    rooms: Iterable[RoomOut],
    reservations: Iterable[ReservationSnapshot],
    exclude_reservation_id: int | None = None,
) -> Occupancy:
    """Beds assigned to any member whose stay overlaps ``window``, checked in or not."""
    resolver = _RoomResolver(rooms)
    held: Occupancy = {}
    for other, member in _assigned_members(reservations, exclude_reservation_id):
        if member.checkout_status == StepStatus.COMPLETED or not window.overlaps(other):
            continue
        for room_id in resolver.resolve(member):
            held.setdefault(room_id, set()).add(member.bed_label)
    return held


def merge(*maps: Occupancy) -> Occupancy:
    merged: Occupancy = {}
    for occupancy in maps:
        for room_id, beds in occupancy.items():
            merged.setdefault(room_id, set()).update(beds)
    return merged
