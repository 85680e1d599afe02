"""Pydantic schemas for supervisor capacity APIs."""

from typing import List
from uuid import UUID

from pydantic import BaseModel, Field


class CapacityResponse(BaseModel):
    supervisor_id: UUID
    full_name: str
    current_capacity: int
    max_capacity: int
    remaining: int
    is_full: bool
    availability_status: str
    accepting_applications: bool

    class Config:
        from_attributes = True


class CapacityListResponse(BaseModel):
    supervisors: List[CapacityResponse]
    total: int


class CapacityUpdate(BaseModel):
    max_capacity: int = Field(..., ge=0, description="New maximum number of approved projects")
    reason: str = Field(..., description="Why the capacity is being changed")


class CapacityRecalculation(BaseModel):
    supervisor_id: UUID
    old_capacity: int
    new_capacity: int
    changed: bool
