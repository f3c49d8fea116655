from datetime import datetime
from string import ascii_uppercase

from sqlalchemy import Enum, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pilgrim_housing.models.base import Base, TimestampMixin
from pilgrim_housing.schemas.room import RoomStatus


def bed_label(index: int) -> str:
    """0 -> A, 25 -> Z, 26 -> AA, 27 -> AB ..."""
    label = ""
    index += 1
    while index:
        index, rem = divmod(index - 1, 26)
        label = ascii_uppercase[rem] + label
    return label


def bed_labels(capacity: int) -> list[str]:
    return [bed_label(i) for i in range(max(capacity, 0))]


class Room(Base, TimestampMixin):
    __tablename__ = "rooms"
    __table_args__ = (UniqueConstraint("building_id", "room_number", name="uq_rooms_building_number"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    building_id: Mapped[int] = mapped_column(ForeignKey("buildings.id", ondelete="CASCADE"), index=True)
    room_number: Mapped[str] = mapped_column(String(20), index=True)
    floor: Mapped[int] = mapped_column(default=1)
    bed_capacity: Mapped[int] = mapped_column(default=1)
    status: Mapped[RoomStatus] = mapped_column(
        Enum(RoomStatus, name="room_status_enum", values_callable=lambda e: [m.value for m in e]),
        default=RoomStatus.AVAILABLE,
    )
    room_type: Mapped[str | None] = mapped_column(String(100))  # Standard, Deluxe, Dormitory ...
    notes: Mapped[str | None] = mapped_column(Text)
    issue_notes: Mapped[str | None] = mapped_column(Text)
    last_cleaned_at: Mapped[datetime | None] = mapped_column()

    building: Mapped["Building"] = relationship(back_populates="rooms")  # noqa: F821

    @property
    def bed_labels(self) -> list[str]:
        return bed_labels(self.bed_capacity)

    @property
    def building_name(self) -> str | None:
        # only safe when the building was eagerly loaded
        building = self.__dict__.get("building")
        return building.name if building is not None else None
