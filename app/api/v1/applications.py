"""
Application API
Students apply to supervisors (together with their partner when paired);
supervisors decide; students resubmit after a revision request.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.deps import (
    Caller,
    get_application_service,
    get_current_caller,
    require_student,
    require_supervisor,
    require_supervisor_or_admin,
)
from app.api.errors import raise_for_result
from app.core.security import Role
from app.schemas.application import (
    ApplicationCreate,
    ApplicationCreated,
    ApplicationListResponse,
    ApplicationResponse,
    ApplicationStatusUpdate,
    DecisionResponse,
    ResubmitResponse,
)
from app.services.application_service import ApplicationService, ProjectDetails
from app.utils.constants import ApplicationStatus

router = APIRouter()


@router.post("", response_model=ApplicationCreated, status_code=status.HTTP_201_CREATED)
async def submit_application(
    application_in: ApplicationCreate,
    caller: Caller = Depends(require_student),
    service: ApplicationService = Depends(get_application_service),
):
    """
    Apply to a supervisor

    **Auth**: Student

    If you are paired, an application is created for your partner as well
    (or yours is linked to your partner's pending one).
    """
    result = await service.submit(
        caller.id,
        application_in.supervisor_id,
        ProjectDetails(
            title=application_in.project_title,
            description=application_in.project_description,
        ),
    )
    raise_for_result(result)
    return ApplicationCreated(application_ids=result.value, message=result.message)


@router.get("/me", response_model=ApplicationListResponse)
async def list_my_applications(
    caller: Caller = Depends(require_student),
    service: ApplicationService = Depends(get_application_service),
):
    """
    Your applications, including those submitted with you as partner

    **Auth**: Student
    """
    applications = await service.list_for_student(caller.id)
    return ApplicationListResponse(
        applications=[ApplicationResponse.model_validate(a) for a in applications],
        total=len(applications),
    )


@router.get("/supervisor", response_model=ApplicationListResponse)
async def list_supervisor_applications(
    status_filter: Optional[ApplicationStatus] = Query(None, alias="status"),
    caller: Caller = Depends(require_supervisor),
    service: ApplicationService = Depends(get_application_service),
):
    """
    Applications addressed to you

    **Auth**: Supervisor
    """
    applications = await service.list_for_supervisor(caller.id, status_filter)
    return ApplicationListResponse(
        applications=[ApplicationResponse.model_validate(a) for a in applications],
        total=len(applications),
    )


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(
    application_id: UUID,
    caller: Caller = Depends(get_current_caller),
    service: ApplicationService = Depends(get_application_service),
):
    """
    Get a single application

    **Auth**: The applicant, their partner, the supervisor, or an admin
    """
    application = await service.get_application(application_id)
    if application is None or (
        not caller.is_admin
        and caller.id not in (
            application.student_id,
            application.partner_id,
            application.supervisor_id,
        )
    ):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Application not found",
        )
    return application


@router.patch("/{application_id}/status", response_model=DecisionResponse)
async def decide_application(
    application_id: UUID,
    update_in: ApplicationStatusUpdate,
    caller: Caller = Depends(require_supervisor_or_admin),
    service: ApplicationService = Depends(get_application_service),
):
    """
    Approve, reject or request revision of an application

    **Auth**: Supervisor of the application, or Admin

    The decision applies to the linked partner application too.
    """
    result = await service.decide(
        application_id,
        update_in.status,
        feedback=update_in.feedback,
        decider_id=caller.id,
        is_admin=caller.role == Role.ADMIN,
    )
    raise_for_result(result)
    outcome = result.value
    return DecisionResponse(
        application_ids=outcome.application_ids,
        status=outcome.status,
        capacity_delta=outcome.capacity_delta,
    )


@router.post("/{application_id}/resubmit", response_model=ResubmitResponse)
async def resubmit_application(
    application_id: UUID,
    caller: Caller = Depends(require_student),
    service: ApplicationService = Depends(get_application_service),
):
    """
    Send an application back for review after a revision request

    **Auth**: Student (applicant)
    """
    result = await service.resubmit(application_id, caller.id)
    raise_for_result(result)
    return ResubmitResponse(application_ids=result.value, message=result.message)
