"""Supervisor capacity API."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.api.deps import Caller, get_capacity_service, get_current_caller
from app.api.errors import raise_for_result
from app.schemas.supervisor import CapacityListResponse, CapacityResponse
from app.services.capacity_service import CapacityService

router = APIRouter()


@router.get("/capacity", response_model=CapacityListResponse)
async def list_supervisor_capacity(
    only_accepting: bool = Query(False, description="Only supervisors accepting applications"),
    caller: Caller = Depends(get_current_caller),
    service: CapacityService = Depends(get_capacity_service),
):
    """
    Capacity of every supervisor

    **Auth**: Any authenticated user
    """
    views = await service.list_capacity_views(only_accepting=only_accepting)
    return CapacityListResponse(
        supervisors=[CapacityResponse.model_validate(v) for v in views],
        total=len(views),
    )


@router.get("/{supervisor_id}/capacity", response_model=CapacityResponse)
async def get_supervisor_capacity(
    supervisor_id: UUID,
    caller: Caller = Depends(get_current_caller),
    service: CapacityService = Depends(get_capacity_service),
):
    """
    Current and maximum capacity of one supervisor

    **Auth**: Any authenticated user
    """
    result = await service.capacity_view(supervisor_id)
    raise_for_result(result)
    return CapacityResponse.model_validate(result.value)
