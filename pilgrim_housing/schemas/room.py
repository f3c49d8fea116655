from datetime import date, datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class RoomStatus(StrEnum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    CLEANING = "cleaning"
    MAINTENANCE = "maintenance"
    BLOCKED = "blocked"


class LifecycleAction(StrEnum):
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"
    MARK_CLEANED = "mark_cleaned"
    REPORT_ISSUE = "report_issue"
    CLEAR_MAINTENANCE = "clear_maintenance"
    BLOCK = "block"
    UNBLOCK = "unblock"


class RoomCreate(BaseModel):
    building_id: int
    room_number: str = Field(min_length=1, max_length=20)
    floor: int = Field(default=1, ge=1)
    bed_capacity: int = Field(default=1, ge=1)
    status: RoomStatus = RoomStatus.AVAILABLE
    room_type: str | None = Field(default=None, max_length=100)
    notes: str | None = None


class RoomUpdate(BaseModel):
    room_number: str | None = Field(default=None, min_length=1, max_length=20)
    floor: int | None = Field(default=None, ge=1)
    bed_capacity: int | None = Field(default=None, ge=1)
    room_type: str | None = Field(default=None, max_length=100)
    notes: str | None = None


class BulkRoomCreate(BaseModel):
    spec: str = Field(max_length=2000)  # e.g. "101(4)-102(4)-103-110(2)"
    floor: int = Field(default=1, ge=1)
    status: RoomStatus = RoomStatus.AVAILABLE
    room_type: str | None = Field(default=None, max_length=100)


class BulkPreviewRequest(BaseModel):
    spec: str = Field(max_length=2000)


class RoomSpecOut(BaseModel):
    room_number: str
    bed_capacity: int

    model_config = {"from_attributes": True}


class BulkPreviewOut(BaseModel):
    count: int
    total_beds: int
    rooms: list[RoomSpecOut]


class TransitionRequest(BaseModel):
    action: LifecycleAction
    note: str | None = None


class RoomOut(BaseModel):
    id: int
    building_id: int
    building_name: str | None = None
    room_number: str
    floor: int
    bed_capacity: int
    status: RoomStatus
    room_type: str | None = None
    notes: str | None = None
    issue_notes: str | None = None
    last_cleaned_at: datetime | None = None
    bed_labels: list[str] = []

    model_config = {"from_attributes": True}


class RoomOccupancyOut(BaseModel):
    room_id: int
    building_id: int
    building_name: str | None
    room_number: str
    floor: int
    status: RoomStatus
    bed_capacity: int
    occupied_beds: list[str]
    free_beds: list[str]


class OccupancyOut(BaseModel):
    target_date: date
    total_beds: int
    occupied_beds: int
    rooms: list[RoomOccupancyOut]
