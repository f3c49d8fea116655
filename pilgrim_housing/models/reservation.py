from datetime import datetime

from sqlalchemy import Enum, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pilgrim_housing.models.base import Base, TimestampMixin
from pilgrim_housing.schemas.reservation import ReservationStatus, StepStatus


class Reservation(Base, TimestampMixin):
    __tablename__ = "reservations"

    id: Mapped[int] = mapped_column(primary_key=True)
    group_name: Mapped[str | None] = mapped_column(String(200))
    arrival_at: Mapped[datetime | None] = mapped_column()
    departure_at: Mapped[datetime | None] = mapped_column()
    status: Mapped[ReservationStatus] = mapped_column(
        Enum(ReservationStatus, name="reservation_status_enum", values_callable=lambda e: [m.value for m in e]),
        default=ReservationStatus.PENDING,
        index=True,
    )

    members: Mapped[list["ReservationMember"]] = relationship(
        back_populates="reservation",
        cascade="all, delete-orphan",
        order_by="ReservationMember.position",
    )


class ReservationMember(Base):
    __tablename__ = "reservation_members"
    __table_args__ = (UniqueConstraint("reservation_id", "position", name="uq_members_reservation_position"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    reservation_id: Mapped[int] = mapped_column(ForeignKey("reservations.id", ondelete="CASCADE"))
    position: Mapped[int] = mapped_column(default=0)
    name: Mapped[str] = mapped_column(String(200))

    # bed assignment; room_number is kept alongside room_id for the booking subsystem
    room_id: Mapped[int | None] = mapped_column(ForeignKey("rooms.id", ondelete="SET NULL"), index=True)
    room_number: Mapped[str | None] = mapped_column(String(20))
    bed_label: Mapped[str | None] = mapped_column(String(4))

    checkin_status: Mapped[StepStatus] = mapped_column(
        Enum(StepStatus, name="checkin_status_enum", values_callable=lambda e: [m.value for m in e]),
        default=StepStatus.PENDING,
    )
    checkout_status: Mapped[StepStatus] = mapped_column(
        Enum(StepStatus, name="checkout_status_enum", values_callable=lambda e: [m.value for m in e]),
        default=StepStatus.PENDING,
    )
    checked_in_at: Mapped[datetime | None] = mapped_column()
    checked_out_at: Mapped[datetime | None] = mapped_column()

    reservation: Mapped["Reservation"] = relationship(back_populates="members")
