from pilgrim_housing.models.base import Base
from pilgrim_housing.models.building import Building
from pilgrim_housing.models.reservation import Reservation, ReservationMember
from pilgrim_housing.models.room import Room

__all__ = ["Base", "Building", "Reservation", "ReservationMember", "Room"]
