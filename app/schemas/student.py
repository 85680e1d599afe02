"""Pydantic schemas for student and partnership APIs."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.utils.constants import RequestAction


class StudentResponse(BaseModel):
    id: UUID
    full_name: str
    email: str
    department: Optional[str] = None
    skills: Optional[List[str]] = None
    interests: Optional[List[str]] = None
    partner_id: Optional[UUID] = None
    partnership_status: str

    class Config:
        from_attributes = True


class AvailableStudentResponse(BaseModel):
    """Public card shown when browsing for a partner."""
    id: UUID
    full_name: str
    department: Optional[str] = None
    skills: Optional[List[str]] = None
    interests: Optional[List[str]] = None

    class Config:
        from_attributes = True


# Partnership Request Schemas
class PartnershipRequestCreate(BaseModel):
    target_id: UUID = Field(..., description="Student to send the request to")


class PartnershipRequestCreated(BaseModel):
    request_id: UUID
    message: str


class PartnershipRespond(BaseModel):
    action: RequestAction = Field(..., description="accept or reject")


class PartnershipRequestResponse(BaseModel):
    id: UUID
    requester_id: UUID
    target_id: UUID
    status: str
    created_at: datetime
    responded_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PartnershipRequestListResponse(BaseModel):
    requests: List[PartnershipRequestResponse]
    total: int


class MessageResponse(BaseModel):
    message: str
