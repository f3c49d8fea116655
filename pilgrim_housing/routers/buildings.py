from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pilgrim_housing.database import get_session
from pilgrim_housing.schemas.building import BuildingCreate, BuildingOut, BuildingUpdate
from pilgrim_housing.schemas.room import BulkRoomCreate, RoomOut
from pilgrim_housing.viewmodels.building_vm import BuildingDetailViewModel, BuildingListViewModel
from pilgrim_housing.viewmodels.room_vm import RoomDetailViewModel

router = APIRouter(prefix="/buildings", tags=["buildings"])


@router.get("", response_model=list[BuildingOut])
async def list_buildings(session: AsyncSession = Depends(get_session)):
    vm = await BuildingListViewModel.load(session)
    return vm.buildings


@router.post("", response_model=BuildingOut, status_code=201)
async def create_building(data: BuildingCreate, session: AsyncSession = Depends(get_session)):
    return await BuildingDetailViewModel.create_building(session, data)


@router.get("/{building_id}", response_model=BuildingOut)
async def get_building(building_id: int, session: AsyncSession = Depends(get_session)):
    vm = await BuildingDetailViewModel.load(session, building_id)
    return vm.building


@router.patch("/{building_id}", response_model=BuildingOut)
async def update_building(building_id: int, data: BuildingUpdate, session: AsyncSession = Depends(get_session)):
    return await BuildingDetailViewModel.update_building(session, building_id, data)


@router.delete("/{building_id}", status_code=204)
async def delete_building(building_id: int, session: AsyncSession = Depends(get_session)):
    await BuildingDetailViewModel.delete_building(session, building_id)


@router.post("/{building_id}/rooms/bulk", response_model=list[RoomOut], status_code=201)
async def create_rooms_bulk(building_id: int, data: BulkRoomCreate, session: AsyncSession = Depends(get_session)):
    """Create every room described by the bulk notation, or none of them."""
    return await RoomDetailViewModel.create_rooms_bulk(session, building_id, data)
