"""Admin API endpoints for supervisor capacity management."""

from uuid import UUID

from fastapi import APIRouter, Depends

from app.api.deps import Caller, get_capacity_service, require_admin
from app.api.errors import raise_for_result
from app.schemas.supervisor import CapacityRecalculation, CapacityResponse, CapacityUpdate
from app.services.capacity_service import CapacityService

router = APIRouter()


@router.patch("/supervisors/{supervisor_id}/capacity", response_model=CapacityResponse)
async def update_supervisor_capacity(
    supervisor_id: UUID,
    update_in: CapacityUpdate,
    caller: Caller = Depends(require_admin),
    service: CapacityService = Depends(get_capacity_service),
):
    """
    Override a supervisor's maximum capacity

    **Auth**: Admin

    The new maximum cannot be below the number of projects already approved.
    """
    result = await service.update_max_capacity(
        supervisor_id, update_in.max_capacity, update_in.reason, admin_id=caller.id
    )
    raise_for_result(result)
    return CapacityResponse.model_validate(result.value)


@router.post(
    "/supervisors/{supervisor_id}/capacity/recalculate",
    response_model=CapacityRecalculation,
)
async def recalculate_supervisor_capacity(
    supervisor_id: UUID,
    caller: Caller = Depends(require_admin),
    service: CapacityService = Depends(get_capacity_service),
):
    """
    Recount approved projects and repair the capacity counter

    **Auth**: Admin
    """
    result = await service.recalculate_capacity(supervisor_id)
    raise_for_result(result)
    old, new = result.value
    return CapacityRecalculation(
        supervisor_id=supervisor_id,
        old_capacity=old,
        new_capacity=new,
        changed=old != new,
    )
