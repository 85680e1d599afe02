"""Supervisor capacity: views, admin overrides and recounts."""

from typing import FrozenSet, Iterable, List, Optional, Tuple, Union
from uuid import UUID

import structlog

from app.config import settings
from app.db.store import RecordStore, SupervisorCapacityView, TransactionRunner
from app.models import Application
from app.services.results import ErrorKind, ServiceResult
from app.utils.constants import ApplicationStatus
from app.utils.validators import validate_capacity_update

logger = structlog.get_logger(__name__)


def count_capacity_units(applications: Iterable[Application]) -> int:
    """
    Count capacity-consuming units among approved applications.

    A linked pair whose members are both approved counts once; a solo
    application, or a linked one whose partner is not approved, counts once
    on its own.
    """
    approved = {
        app.id: app
        for app in applications
        if app.status == ApplicationStatus.APPROVED.value
    }
    units: set[Union[UUID, FrozenSet[UUID]]] = set()
    for app in approved.values():
        if app.linked_application_id is not None and app.linked_application_id in approved:
            units.add(frozenset((app.id, app.linked_application_id)))
        else:
            units.add(app.id)
    return len(units)


class CapacityService:
    """Read and maintain the supervisor capacity counter."""

    def __init__(self, runner: TransactionRunner, max_capacity_limit: Optional[int] = None):
        self.runner = runner
        self.max_capacity_limit = max_capacity_limit or settings.MAX_SUPERVISOR_CAPACITY

    async def capacity_view(self, supervisor_id: UUID) -> ServiceResult[SupervisorCapacityView]:
        view = await self.runner.read(lambda store: store.capacity_view(supervisor_id))
        if view is None:
            return ServiceResult.failure(ErrorKind.SUPERVISOR_NOT_FOUND, "Supervisor not found")
        return ServiceResult.success(view)

    async def list_capacity_views(self, only_accepting: bool = False) -> List[SupervisorCapacityView]:
        async def work(store: RecordStore) -> List[SupervisorCapacityView]:
            views = [SupervisorCapacityView.from_supervisor(s) for s in await store.list_supervisors()]
            if only_accepting:
                views = [v for v in views if v.accepting_applications]
            return views

        return await self.runner.read(work)

    async def update_max_capacity(
        self,
        supervisor_id: UUID,
        max_capacity: int,
        reason: str,
        admin_id: Optional[UUID] = None,
    ) -> ServiceResult[SupervisorCapacityView]:
        """Admin override of a supervisor's maximum capacity."""

        async def work(store: RecordStore) -> ServiceResult[SupervisorCapacityView]:
            supervisor = await store.get_supervisor(supervisor_id)
            if supervisor is None:
                return ServiceResult.failure(ErrorKind.SUPERVISOR_NOT_FOUND, "Supervisor not found")

            is_valid, errors = validate_capacity_update(
                max_capacity, supervisor.current_capacity, reason, self.max_capacity_limit
            )
            if not is_valid:
                return ServiceResult.failure(ErrorKind.VALIDATION_FAILED, "; ".join(errors))

            old_max = supervisor.max_capacity
            supervisor.max_capacity = max_capacity
            logger.info(
                "supervisor_capacity_override",
                supervisor_id=str(supervisor_id),
                admin_id=str(admin_id) if admin_id else None,
                old_max_capacity=old_max,
                new_max_capacity=max_capacity,
                reason=reason.strip(),
            )
            return ServiceResult.success(SupervisorCapacityView.from_supervisor(supervisor))

        return await self.runner.run(
            "update_max_capacity", work, supervisor_id=str(supervisor_id)
        )

    async def recalculate_capacity(self, supervisor_id: UUID) -> ServiceResult[Tuple[int, int]]:
        """Recount approved units and repair the counter if it drifted."""

        async def work(store: RecordStore) -> ServiceResult[Tuple[int, int]]:
            supervisor = await store.get_supervisor(supervisor_id)
            if supervisor is None:
                return ServiceResult.failure(ErrorKind.SUPERVISOR_NOT_FOUND, "Supervisor not found")

            counted = count_capacity_units(await store.approved_applications(supervisor_id))
            old = supervisor.current_capacity
            if old != counted:
                supervisor.current_capacity = counted
                logger.warning(
                    "supervisor_capacity_repaired",
                    supervisor_id=str(supervisor_id),
                    old_capacity=old,
                    new_capacity=counted,
                )
            return ServiceResult.success((old, counted))

        return await self.runner.run(
            "recalculate_capacity", work, supervisor_id=str(supervisor_id)
        )
