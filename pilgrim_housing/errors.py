"""Error taxonomy for the accommodation engine.

Every error carries a human readable ``message``, a stable ``error_code`` and a
``details`` mapping that the HTTP layer renders verbatim.
"""

from typing import Any


class HousingError(Exception):
    status_code = 400

    def __init__(self, message: str, error_code: str | None = None, details: dict[str, Any] | None = None):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(HousingError):
    """A required field is missing or out of range. Raised before any mutation."""

    status_code = 422


class InvalidTransition(ValidationError):
    def __init__(self, status: str, action: str):
        super().__init__(
            f"Cannot apply '{action}' to a room that is {status}",
            details={"status": status, "action": action},
        )


class RoomUnavailable(ValidationError):
    def __init__(self, room_id: int, status: str | None = None):
        super().__init__(
            f"Room {room_id} is not open for allocation",
            details={"room_id": room_id, "status": status},
        )


class NotFound(HousingError):
    status_code = 404

    def __init__(self, kind: str, key: Any):
        super().__init__(f"{kind} {key} not found", details={"kind": kind, "key": key})


class ParseError(HousingError):
    """Malformed bulk room notation; the whole submission is rejected."""

    status_code = 422

    def __init__(self, message: str, token: str | None = None, position: int | None = None):
        super().__init__(message, details={"token": token, "position": position})
        self.token = token
        self.position = position


class CapacityExceeded(HousingError):
    status_code = 409

    def __init__(self, room_number: str, bed_capacity: int):
        super().__init__(
            f"Room {room_number} is full ({bed_capacity} beds)",
            details={"room_number": room_number, "bed_capacity": bed_capacity},
        )


class IncompleteAllocation(HousingError):
    status_code = 409

    def __init__(self, pending: int):
        super().__init__(f"Please assign all {pending} pending members", details={"pending": pending})
        self.pending = pending


class Conflict(HousingError):
    """The backing store changed underneath the caller; re-fetch and retry."""

    status_code = 409


class BackingStoreError(HousingError):
    status_code = 503
