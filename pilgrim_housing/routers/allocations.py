from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from pilgrim_housing.database import get_session
from pilgrim_housing.schemas.allocation import (
    AllocationOut,
    AssignRequest,
    CommitOut,
    OpenAllocationRequest,
    SelectMemberRequest,
)
from pilgrim_housing.viewmodels.allocation_vm import AllocationViewModel, SessionRegistry

router = APIRouter(prefix="/allocations", tags=["allocations"])


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.allocations


@router.post("", response_model=AllocationOut, status_code=201)
async def open_allocation(
    data: OpenAllocationRequest,
    session: AsyncSession = Depends(get_session),
    registry: SessionRegistry = Depends(get_registry),
):
    allocation = await AllocationViewModel.open(session, data.reservation_id)
    session_id = registry.add(allocation)
    return AllocationViewModel.to_out(session_id, allocation)


@router.get("/{session_id}", response_model=AllocationOut)
async def get_allocation(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    return AllocationViewModel.to_out(session_id, registry.get(session_id))


@router.post("/{session_id}/select", response_model=AllocationOut)
async def select_member(
    session_id: str, data: SelectMemberRequest, registry: SessionRegistry = Depends(get_registry)
):
    allocation = registry.get(session_id)
    allocation.select(data.member_index)
    return AllocationViewModel.to_out(session_id, allocation)


@router.post("/{session_id}/assign", response_model=AllocationOut)
async def assign_bed(session_id: str, data: AssignRequest, registry: SessionRegistry = Depends(get_registry)):
    allocation = registry.get(session_id)
    allocation.assign(data.room_id, data.member_index)
    return AllocationViewModel.to_out(session_id, allocation)


@router.delete("/{session_id}/members/{member_index}", response_model=AllocationOut)
async def unassign_bed(session_id: str, member_index: int, registry: SessionRegistry = Depends(get_registry)):
    allocation = registry.get(session_id)
    allocation.unassign(member_index)
    return AllocationViewModel.to_out(session_id, allocation)


@router.post("/{session_id}/commit", response_model=CommitOut)
async def commit_allocation(
    session_id: str,
    session: AsyncSession = Depends(get_session),
    registry: SessionRegistry = Depends(get_registry),
):
    result = await AllocationViewModel.commit(session, registry.get(session_id))
    registry.discard(session_id)
    return result


@router.delete("/{session_id}", status_code=204)
async def close_allocation(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    # closing twice is harmless
    registry.discard(session_id)
