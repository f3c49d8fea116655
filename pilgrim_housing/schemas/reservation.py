from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel


class ReservationStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class StepStatus(StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"


class MemberSnapshot(BaseModel):
    id: int
    position: int
    name: str
    room_id: int | None = None
    room_number: str | None = None
    bed_label: str | None = None
    checkin_status: StepStatus = StepStatus.PENDING
    checkout_status: StepStatus = StepStatus.PENDING
    checked_in_at: datetime | None = None
    checked_out_at: datetime | None = None

    model_config = {"from_attributes": True}

    @property
    def has_bed(self) -> bool:
        return bool(self.bed_label) and (self.room_id is not None or bool(self.room_number))

    @property
    def in_house(self) -> bool:
        return (
            self.checkin_status == StepStatus.COMPLETED
            and self.checkout_status != StepStatus.COMPLETED
        )


class ReservationSnapshot(BaseModel):
    id: int
    group_name: str | None = None
    arrival_at: datetime | None = None
    departure_at: datetime | None = None
    status: ReservationStatus
    members: list[MemberSnapshot] = []

    model_config = {"from_attributes": True}
