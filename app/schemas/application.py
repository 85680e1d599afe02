"""Pydantic schemas for application APIs."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.utils.constants import ApplicationStatus


class ApplicationCreate(BaseModel):
    supervisor_id: UUID
    project_title: str = Field(..., min_length=1, max_length=255)
    project_description: str = Field(..., min_length=1)


class ApplicationCreated(BaseModel):
    application_ids: List[UUID]
    message: str


class ApplicationStatusUpdate(BaseModel):
    status: ApplicationStatus
    feedback: Optional[str] = Field(None, max_length=5000)


class ApplicationResponse(BaseModel):
    id: UUID
    student_id: UUID
    supervisor_id: UUID
    project_title: str
    project_description: str
    status: str
    supervisor_feedback: Optional[str] = None
    response_date: Optional[datetime] = None
    resubmitted_date: Optional[datetime] = None
    has_partner: bool
    partner_id: Optional[UUID] = None
    linked_application_id: Optional[UUID] = None
    is_lead_application: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ApplicationListResponse(BaseModel):
    applications: List[ApplicationResponse]
    total: int


class DecisionResponse(BaseModel):
    application_ids: List[UUID]
    status: ApplicationStatus
    capacity_delta: int


class ResubmitResponse(BaseModel):
    application_ids: List[UUID]
    message: str
