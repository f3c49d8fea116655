from datetime import date

from pydantic import BaseModel, Field


class OpenAllocationRequest(BaseModel):
    reservation_id: int


class SelectMemberRequest(BaseModel):
    member_index: int = Field(ge=0)


class AssignRequest(BaseModel):
    room_id: int
    member_index: int | None = Field(default=None, ge=0)  # None = currently selected member


class AllocationMemberOut(BaseModel):
    index: int
    member_id: int
    name: str
    room_id: int | None = None
    room_number: str | None = None
    bed_label: str | None = None
    checked_out: bool = False


class AllocationRoomOut(BaseModel):
    room_id: int
    building_id: int
    building_name: str | None
    room_number: str
    floor: int
    status: str
    bed_capacity: int
    occupied_count: int
    is_full: bool


class AllocationOut(BaseModel):
    session_id: str
    reservation_id: int
    target_date: date | None
    selected: int | None
    total_members: int
    assigned_count: int
    pending_count: int
    members: list[AllocationMemberOut]
    rooms: list[AllocationRoomOut]


class CommitOut(BaseModel):
    reservation_id: int
    assigned: int
    touched_rooms: list[int]
