"""
API Dependencies
Common dependencies for API endpoints (services, authentication, authorization)
"""

from fastapi import Depends

from app.core.security import Caller, Role, get_current_caller, require_role
from app.db.session import AsyncSessionLocal
from app.db.store import TransactionRunner
from app.services.application_service import ApplicationService
from app.services.capacity_service import CapacityService
from app.services.partnership_service import PartnershipService


def get_transaction_runner() -> TransactionRunner:
    """
    Runner bound to the application's session factory.

    Tests override this dependency to point at their own database.
    """
    return TransactionRunner(AsyncSessionLocal)


def get_partnership_service(
    runner: TransactionRunner = Depends(get_transaction_runner),
) -> PartnershipService:
    return PartnershipService(runner)


def get_application_service(
    runner: TransactionRunner = Depends(get_transaction_runner),
    partnerships: PartnershipService = Depends(get_partnership_service),
) -> ApplicationService:
    return ApplicationService(runner, partnerships)


def get_capacity_service(
    runner: TransactionRunner = Depends(get_transaction_runner),
) -> CapacityService:
    return CapacityService(runner)


# Role-based access control
require_student = require_role(Role.STUDENT)
require_supervisor = require_role(Role.SUPERVISOR)
require_supervisor_or_admin = require_role(Role.SUPERVISOR, Role.ADMIN)
require_admin = require_role(Role.ADMIN)

__all__ = [
    "Caller",
    "get_current_caller",
    "get_transaction_runner",
    "get_partnership_service",
    "get_application_service",
    "get_capacity_service",
    "require_student",
    "require_supervisor",
    "require_supervisor_or_admin",
    "require_admin",
]
