from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from pilgrim_housing.database import get_session
from pilgrim_housing.schemas.room import OccupancyOut
from pilgrim_housing.viewmodels.occupancy_vm import OccupancyViewModel

router = APIRouter(prefix="/occupancy", tags=["occupancy"])


@router.get("", response_model=OccupancyOut)
async def get_occupancy(
    session: AsyncSession = Depends(get_session),
    target_date: date | None = Query(default=None, alias="date"),
    building_id: int | None = None,
):
    """Beds taken by checked-in guests on ``date`` (today when omitted)."""
    vm = await OccupancyViewModel.load(session, target_date or date.today(), building_id=building_id)
    return vm.to_out()
