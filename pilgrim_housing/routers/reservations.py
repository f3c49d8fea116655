from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pilgrim_housing.database import get_session
from pilgrim_housing.schemas.reservation import MemberSnapshot, ReservationSnapshot
from pilgrim_housing.viewmodels.reservation_vm import ReservationViewModel

router = APIRouter(prefix="/reservations", tags=["reservations"])


@router.get("/approved", response_model=list[ReservationSnapshot])
async def list_approved(session: AsyncSession = Depends(get_session)):
    return await ReservationViewModel.list_approved(session)


@router.post("/{reservation_id}/members/{member_index}/checkin", response_model=MemberSnapshot)
async def check_in(reservation_id: int, member_index: int, session: AsyncSession = Depends(get_session)):
    return await ReservationViewModel.check_in(session, reservation_id, member_index)


@router.post("/{reservation_id}/members/{member_index}/checkout", response_model=MemberSnapshot)
async def check_out(reservation_id: int, member_index: int, session: AsyncSession = Depends(get_session)):
    return await ReservationViewModel.check_out(session, reservation_id, member_index)
