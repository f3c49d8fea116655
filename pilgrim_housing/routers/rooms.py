from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pilgrim_housing.database import get_session
from pilgrim_housing.schemas.room import (
    BulkPreviewOut,
    BulkPreviewRequest,
    RoomCreate,
    RoomOut,
    RoomStatus,
    RoomUpdate,
    TransitionRequest,
)
from pilgrim_housing.viewmodels.lifecycle_vm import RoomLifecycleViewModel
from pilgrim_housing.viewmodels.room_vm import RoomDetailViewModel, RoomListViewModel

router = APIRouter(prefix="/rooms", tags=["rooms"])


@router.get("", response_model=list[RoomOut])
async def list_rooms(
    session: AsyncSession = Depends(get_session),
    building_id: int | None = None,
    floor: int | None = None,
    status: RoomStatus | None = None,
):
    vm = await RoomListViewModel.load(session, building_id=building_id, floor=floor, status=status)
    return vm.rooms


@router.post("", response_model=RoomOut, status_code=201)
async def create_room(data: RoomCreate, session: AsyncSession = Depends(get_session)):
    room = await RoomDetailViewModel.create_room(session, data)
    vm = await RoomDetailViewModel.load(session, room.id)
    return vm.room


@router.post("/bulk/preview", response_model=BulkPreviewOut)
async def preview_bulk(data: BulkPreviewRequest):
    """Expand the bulk notation without touching the database."""
    return RoomDetailViewModel.preview_bulk(data.spec)


@router.get("/housekeeping", response_model=list[RoomOut])
async def housekeeping(session: AsyncSession = Depends(get_session)):
    vm = await RoomListViewModel.housekeeping(session)
    return vm.rooms


@router.get("/{room_id}", response_model=RoomOut)
async def get_room(room_id: int, session: AsyncSession = Depends(get_session)):
    vm = await RoomDetailViewModel.load(session, room_id)
    return vm.room


@router.patch("/{room_id}", response_model=RoomOut)
async def update_room(room_id: int, data: RoomUpdate, session: AsyncSession = Depends(get_session)):
    await RoomDetailViewModel.update_room(session, room_id, data)
    vm = await RoomDetailViewModel.load(session, room_id)
    return vm.room


@router.delete("/{room_id}", status_code=204)
async def delete_room(room_id: int, session: AsyncSession = Depends(get_session)):
    await RoomDetailViewModel.delete_room(session, room_id)


@router.post("/{room_id}/transitions", response_model=RoomOut)
async def transition_room(room_id: int, data: TransitionRequest, session: AsyncSession = Depends(get_session)):
    await RoomLifecycleViewModel.transition(session, room_id, data.action, data.note)
    vm = await RoomDetailViewModel.load(session, room_id)
    return vm.room


@router.post("/{room_id}/cleaned", response_model=RoomOut)
async def mark_cleaned(room_id: int, session: AsyncSession = Depends(get_session)):
    await RoomLifecycleViewModel.mark_cleaned(session, room_id)
    vm = await RoomDetailViewModel.load(session, room_id)
    return vm.room
