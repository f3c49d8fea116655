from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class BuildingStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"


class BuildingCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    address: str | None = None
    description: str | None = None
    total_floors: int = Field(default=1, ge=1, le=100)
    status: BuildingStatus = BuildingStatus.ACTIVE


class BuildingUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    address: str | None = None
    description: str | None = None
    total_floors: int | None = Field(default=None, ge=1, le=100)
    status: BuildingStatus | None = None


class BuildingOut(BaseModel):
    id: int
    name: str
    address: str | None
    description: str | None
    total_floors: int
    status: BuildingStatus
    created_at: datetime
    updated_at: datetime
    room_count: int = 0
    bed_count: int = 0

    model_config = {"from_attributes": True}
