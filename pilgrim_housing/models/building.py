from sqlalchemy import Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pilgrim_housing.models.base import Base, TimestampMixin
from pilgrim_housing.schemas.building import BuildingStatus


class Building(Base, TimestampMixin):
    __tablename__ = "buildings"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200))
    address: Mapped[str | None] = mapped_column(Text)
    description: Mapped[str | None] = mapped_column(Text)
    total_floors: Mapped[int] = mapped_column(default=1)
    status: Mapped[BuildingStatus] = mapped_column(
        Enum(BuildingStatus, name="building_status_enum", values_callable=lambda e: [m.value for m in e]),
        default=BuildingStatus.ACTIVE,
    )

    rooms: Mapped[list["Room"]] = relationship(  # noqa: F821
        back_populates="building", cascade="all, delete-orphan", passive_deletes=True
    )
