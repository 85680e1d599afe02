"""Student lookup API."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import Caller, get_current_caller, get_partnership_service, require_student
from app.schemas.student import AvailableStudentResponse, StudentResponse
from app.services.partnership_service import PartnershipService

router = APIRouter()


@router.get("/available", response_model=List[AvailableStudentResponse])
async def list_available_students(
    caller: Caller = Depends(require_student),
    service: PartnershipService = Depends(get_partnership_service),
):
    """
    Students with no partner and nothing pending, excluding yourself

    **Auth**: Student
    """
    return await service.list_available_students(caller.id)


@router.get("/{student_id}", response_model=StudentResponse)
async def get_student(
    student_id: UUID,
    caller: Caller = Depends(get_current_caller),
    service: PartnershipService = Depends(get_partnership_service),
):
    """
    Get a student's profile and pairing state

    **Auth**: Any authenticated user
    """
    student = await service.get_student(student_id)
    if student is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Student not found",
        )
    return student
