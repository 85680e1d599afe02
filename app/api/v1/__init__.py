"""API v1 routes."""

from fastapi import APIRouter

from app.api.v1 import admin, applications, partnerships, students, supervisors

api_router = APIRouter()

# Include all route modules
api_router.include_router(partnerships.router, prefix="/partnerships", tags=["Partnerships"])
api_router.include_router(students.router, prefix="/students", tags=["Students"])
api_router.include_router(applications.router, prefix="/applications", tags=["Applications"])
api_router.include_router(supervisors.router, prefix="/supervisors", tags=["Supervisors"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
