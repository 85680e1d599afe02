"""
Partnership API
Students send, answer, withdraw partnership requests and dissolve partnerships.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import Caller, get_partnership_service, require_student
from app.api.errors import raise_for_result
from app.schemas.student import (
    MessageResponse,
    PartnershipRequestCreate,
    PartnershipRequestCreated,
    PartnershipRequestListResponse,
    PartnershipRequestResponse,
    PartnershipRespond,
)
from app.services.partnership_service import PartnershipService
from app.utils.constants import RequestDirection, RequestStatus

router = APIRouter()


@router.post(
    "/requests",
    response_model=PartnershipRequestCreated,
    status_code=status.HTTP_201_CREATED,
)
async def send_partnership_request(
    request_in: PartnershipRequestCreate,
    caller: Caller = Depends(require_student),
    service: PartnershipService = Depends(get_partnership_service),
):
    """
    Send a partnership request to another student

    **Auth**: Student

    Both students must be unpaired with no pending request. If the target has
    already sent you a request, accept that one instead.
    """
    result = await service.send_request(caller.id, request_in.target_id)
    raise_for_result(result)
    return PartnershipRequestCreated(request_id=result.value, message=result.message)


@router.post("/requests/{request_id}/respond", response_model=MessageResponse)
async def respond_to_partnership_request(
    request_id: UUID,
    response_in: PartnershipRespond,
    caller: Caller = Depends(require_student),
    service: PartnershipService = Depends(get_partnership_service),
):
    """
    Accept or reject a request addressed to you

    **Auth**: Student (target of the request)
    """
    result = await service.respond(request_id, caller.id, response_in.action)
    raise_for_result(result)
    return MessageResponse(message=result.message)


@router.delete("/requests/{request_id}", response_model=MessageResponse)
async def cancel_partnership_request(
    request_id: UUID,
    caller: Caller = Depends(require_student),
    service: PartnershipService = Depends(get_partnership_service),
):
    """
    Withdraw a pending request you sent

    **Auth**: Student (requester)
    """
    result = await service.cancel(request_id, caller.id)
    raise_for_result(result)
    return MessageResponse(message=result.message)


@router.post("/unpair", response_model=MessageResponse)
async def unpair(
    caller: Caller = Depends(require_student),
    service: PartnershipService = Depends(get_partnership_service),
):
    """
    End your current partnership

    **Auth**: Student

    Applications already submitted together stay linked.
    """
    result = await service.unpair(caller.id)
    raise_for_result(result)
    return MessageResponse(message=result.message)


@router.get("/requests", response_model=PartnershipRequestListResponse)
async def list_partnership_requests(
    direction: RequestDirection = Query(RequestDirection.ALL),
    status_filter: Optional[RequestStatus] = Query(RequestStatus.PENDING, alias="status"),
    all_statuses: bool = Query(False, description="Ignore the status filter"),
    caller: Caller = Depends(require_student),
    service: PartnershipService = Depends(get_partnership_service),
):
    """
    List your partnership requests

    **Auth**: Student

    **Filters**:
    - `direction`: incoming, outgoing or all
    - `status`: request status, pending by default
    - `all_statuses`: return requests in every status
    """
    requests = await service.list_requests(
        caller.id, direction, None if all_statuses else status_filter
    )
    return PartnershipRequestListResponse(
        requests=[PartnershipRequestResponse.model_validate(r) for r in requests],
        total=len(requests),
    )
