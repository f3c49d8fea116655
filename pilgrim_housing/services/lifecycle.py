import logging
from datetime import datetime

from pilgrim_housing.errors import InvalidTransition
from pilgrim_housing.models.room import Room
from pilgrim_housing.schemas.room import LifecycleAction, RoomStatus

logger = logging.getLogger(__name__)

S = RoomStatus
A = LifecycleAction

TRANSITIONS: dict[tuple[RoomStatus, LifecycleAction], RoomStatus] = {
    (S.AVAILABLE, A.CHECK_IN): S.OCCUPIED,
    (S.OCCUPIED, A.CHECK_IN): S.OCCUPIED,
    (S.CLEANING, A.CHECK_IN): S.CLEANING,  # cleaning pass still owed for the vacated bed
    # a vacated bed always needs a cleaning pass, even if others remain
    (S.OCCUPIED, A.CHECK_OUT): S.CLEANING,
    (S.AVAILABLE, A.CHECK_OUT): S.CLEANING,
    (S.CLEANING, A.CHECK_OUT): S.CLEANING,
    (S.MAINTENANCE, A.CHECK_OUT): S.MAINTENANCE,
    (S.BLOCKED, A.CHECK_OUT): S.BLOCKED,
    (S.CLEANING, A.MARK_CLEANED): S.AVAILABLE,
    (S.AVAILABLE, A.REPORT_ISSUE): S.MAINTENANCE,
    (S.OCCUPIED, A.REPORT_ISSUE): S.MAINTENANCE,
    (S.CLEANING, A.REPORT_ISSUE): S.MAINTENANCE,
    (S.MAINTENANCE, A.REPORT_ISSUE): S.MAINTENANCE,
    (S.MAINTENANCE, A.CLEAR_MAINTENANCE): S.AVAILABLE,
    (S.AVAILABLE, A.BLOCK): S.BLOCKED,
    (S.CLEANING, A.BLOCK): S.BLOCKED,
    (S.MAINTENANCE, A.BLOCK): S.BLOCKED,
    (S.BLOCKED, A.UNBLOCK): S.AVAILABLE,
}

NOT_ALLOCATABLE = frozenset({RoomStatus.MAINTENANCE, RoomStatus.BLOCKED})


def next_status(status: RoomStatus, action: LifecycleAction) -> RoomStatus:
    try:
        return TRANSITIONS[(RoomStatus(status), LifecycleAction(action))]
    except KeyError:
        raise InvalidTransition(status, action) from None


def is_allocatable(status: RoomStatus) -> bool:
    return status not in NOT_ALLOCATABLE


def reevaluate(status: RoomStatus, occupied_beds: int) -> RoomStatus:
    """Status after allocations changed; only an idle room with sleepers moves."""
    if status == RoomStatus.AVAILABLE and occupied_beds > 0:
        return RoomStatus.OCCUPIED
    return status


def apply_action(room: Room, action: LifecycleAction, note: str | None = None, now: datetime | None = None) -> Room:
    """Move ``room`` along the lifecycle in memory; the caller commits."""
    new_status = next_status(room.status, action)
    now = now or datetime.now()

    if action == LifecycleAction.MARK_CLEANED:
        room.last_cleaned_at = now
    elif action in (LifecycleAction.REPORT_ISSUE, LifecycleAction.BLOCK):
        room.issue_notes = note or room.issue_notes
    elif action in (LifecycleAction.CLEAR_MAINTENANCE, LifecycleAction.UNBLOCK):
        room.issue_notes = None

    if new_status != room.status:
        logger.info("Room %s: %s -> %s (%s)", room.id, room.status, new_status, action)
    room.status = new_status
    return room
