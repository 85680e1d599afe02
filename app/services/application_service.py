"""
Application linking workflow.

Creates applications (linking a paired student's application with the
partner's so the two behave as one unit), propagates supervisor decisions
across a linked pair, handles resubmission after a revision request, and keeps
``Supervisor.current_capacity`` equal to the number of approved units.

Status machine:

    pending -> approved | rejected | revision_requested
    revision_requested -> pending   (resubmit)

Decisions may be corrected between the three decision statuses; nothing goes
back to pending except through resubmission.
"""

import uuid
from dataclasses import dataclass
from typing import List, Optional
from uuid import UUID

import structlog

from app.db.store import RecordStore, TransactionRunner
from app.models import Application, Student
from app.services.partnership_service import PartnershipService
from app.services.results import ErrorKind, ServiceResult
from app.utils.constants import (
    ACTIVE_APPLICATION_STATUSES,
    DECISION_STATUSES,
    ApplicationStatus,
)
from app.utils.helpers import utcnow
from app.utils.validators import validate_project_details

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ProjectDetails:
    """Free-text part of an application."""
    title: str
    description: str


@dataclass(frozen=True)
class DecisionOutcome:
    """What a decision changed."""
    application_ids: List[UUID]
    status: ApplicationStatus
    capacity_delta: int


class ApplicationService:
    """Linked-application engine and capacity accounting."""

    def __init__(self, runner: TransactionRunner, partnerships: PartnershipService):
        self.runner = runner
        self.partnerships = partnerships

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------
    async def submit(
        self, student_id: UUID, supervisor_id: UUID, details: ProjectDetails
    ) -> ServiceResult[List[UUID]]:
        """
        Submit an application to a supervisor.

        The student's partner is captured by value at this moment. For a
        paired student either both applications are created together (the
        submitter's first, as lead), or the new one is attached to the
        partner's pending application.

        Returns:
            ServiceResult with the ids of the applications created
        """
        is_valid, errors = validate_project_details(details.title, details.description)
        if not is_valid:
            return ServiceResult.failure(ErrorKind.VALIDATION_FAILED, "; ".join(errors))

        async def work(store: RecordStore) -> ServiceResult[List[UUID]]:
            student = await store.get_student(student_id)
            if student is None:
                return ServiceResult.failure(ErrorKind.STUDENT_NOT_FOUND, "Student profile not found")

            supervisor = await store.get_supervisor(supervisor_id)
            if supervisor is None or supervisor.closed_to_applications:
                return ServiceResult.failure(
                    ErrorKind.SUPERVISOR_UNAVAILABLE,
                    "This supervisor is not accepting applications",
                )

            if await store.active_application(student_id, supervisor_id) is not None:
                return ServiceResult.failure(
                    ErrorKind.DUPLICATE_APPLICATION,
                    "You already have an active application with this supervisor",
                )

            partner_id = await self.partnerships.current_partner_id(store, student_id)
            if partner_id is None:
                application = self._new_application(student, supervisor_id, details, partner_id=None)
                store.add(application)
                return ServiceResult.success([application.id], "Application submitted")

            partner_application = await store.active_application(partner_id, supervisor_id)

            if partner_application is None:
                partner = await store.get_student(partner_id)
                lead = self._new_application(student, supervisor_id, details, partner_id=partner_id)
                follower = self._new_application(partner, supervisor_id, details, partner_id=student_id)
                self._link(lead, follower)
                store.add_all([lead, follower])
                return ServiceResult.success(
                    [lead.id, follower.id], "Applications submitted for you and your partner"
                )

            if (
                partner_application.status == ApplicationStatus.PENDING.value
                and not partner_application.is_linked
            ):
                application = self._new_application(student, supervisor_id, details, partner_id=partner_id)
                self._link(partner_application, application)
                partner_application.has_partner = True
                partner_application.partner_id = student_id
                store.add(application)
                return ServiceResult.success(
                    [application.id], "Application linked with your partner's application"
                )

            return ServiceResult.failure(
                ErrorKind.DUPLICATE_APPLICATION,
                "Your partner already has an application with this supervisor that cannot be linked",
            )

        result = await self.runner.run(
            "submit_application",
            work,
            student_id=str(student_id),
            supervisor_id=str(supervisor_id),
        )
        if result.ok:
            logger.info(
                "application_submitted",
                student_id=str(student_id),
                supervisor_id=str(supervisor_id),
                application_ids=[str(i) for i in result.value],
            )
        return result

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------
    async def decide(
        self,
        application_id: UUID,
        new_status: ApplicationStatus,
        feedback: Optional[str] = None,
        decider_id: Optional[UUID] = None,
        is_admin: bool = False,
    ) -> ServiceResult[DecisionOutcome]:
        """
        Record a supervisor decision on an application and its linked partner.

        Capacity changes by exactly one per unit: entering ``approved`` adds
        one, leaving it removes one, no matter how many members the unit has.
        """

        async def work(store: RecordStore) -> ServiceResult[DecisionOutcome]:
            if new_status not in DECISION_STATUSES:
                return ServiceResult.failure(
                    ErrorKind.INVALID_TRANSITION,
                    "Cannot revert application back to pending status after a decision has been made",
                )

            application = await store.get_application(application_id)
            if application is None or (
                decider_id is not None and not is_admin and application.supervisor_id != decider_id
            ):
                return ServiceResult.failure(
                    ErrorKind.APPLICATION_NOT_FOUND,
                    "Application not found. It may have been deleted.",
                )

            unit = await self._load_unit(store, application)

            if new_status in ACTIVE_APPLICATION_STATUSES:
                member_ids = {member.id for member in unit}
                for member in unit:
                    if member.status != ApplicationStatus.REJECTED.value:
                        continue
                    other = await store.active_application(member.student_id, member.supervisor_id)
                    if other is not None and other.id not in member_ids:
                        return ServiceResult.failure(
                            ErrorKind.INVALID_TRANSITION,
                            "A newer active application exists for this student and supervisor",
                        )

            was_approved = any(m.status == ApplicationStatus.APPROVED.value for m in unit)
            is_approved = new_status == ApplicationStatus.APPROVED
            delta = int(is_approved) - int(was_approved)

            if delta:
                supervisor = await store.get_supervisor(application.supervisor_id)
                if supervisor is None:
                    return ServiceResult.failure(ErrorKind.SUPERVISOR_NOT_FOUND, "Supervisor not found")
                if delta > 0 and supervisor.current_capacity >= supervisor.max_capacity:
                    return ServiceResult.failure(
                        ErrorKind.CAPACITY_EXCEEDED,
                        f"Cannot approve: Maximum capacity reached "
                        f"({supervisor.current_capacity}/{supervisor.max_capacity} projects)",
                    )
                supervisor.current_capacity = max(0, supervisor.current_capacity + delta)

            now = utcnow()
            for member in unit:
                member.set_status(new_status)
                if feedback is not None:
                    member.supervisor_feedback = feedback
                if new_status in (ApplicationStatus.APPROVED, ApplicationStatus.REJECTED):
                    member.response_date = now

            return ServiceResult.success(
                DecisionOutcome(
                    application_ids=[member.id for member in unit],
                    status=new_status,
                    capacity_delta=delta,
                )
            )

        result = await self.runner.run(
            "decide_application",
            work,
            application_id=str(application_id),
            new_status=new_status.value,
        )
        if result.ok:
            logger.info(
                "application_decided",
                application_id=str(application_id),
                new_status=new_status.value,
                linked=len(result.value.application_ids) > 1,
                capacity_delta=result.value.capacity_delta,
            )
        return result

    async def resubmit(self, application_id: UUID, student_id: UUID) -> ServiceResult[List[UUID]]:
        """Send an application in revision back to pending, with its linked partner."""

        async def work(store: RecordStore) -> ServiceResult[List[UUID]]:
            application = await store.get_application(application_id)
            if application is None or student_id not in (
                application.student_id,
                application.partner_id,
            ):
                return ServiceResult.failure(
                    ErrorKind.APPLICATION_NOT_FOUND,
                    "Application not found. It may have been deleted.",
                )
            if application.student_id != student_id:
                return ServiceResult.failure(
                    ErrorKind.UNAUTHORIZED, "You don't have permission to resubmit this application"
                )
            if application.status != ApplicationStatus.REVISION_REQUESTED.value:
                return ServiceResult.failure(
                    ErrorKind.INVALID_TRANSITION,
                    "Application can only be resubmitted when in revision_requested status",
                )

            now = utcnow()
            updated = []
            for member in await self._load_unit(store, application):
                if member.status != ApplicationStatus.REVISION_REQUESTED.value:
                    continue
                member.set_status(ApplicationStatus.PENDING)
                member.resubmitted_date = now
                updated.append(member.id)
            return ServiceResult.success(updated, "Application resubmitted successfully")

        result = await self.runner.run(
            "resubmit_application",
            work,
            application_id=str(application_id),
            student_id=str(student_id),
        )
        if result.ok:
            logger.info("application_resubmitted", application_id=str(application_id))
        return result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    async def get_application(self, application_id: UUID) -> Optional[Application]:
        return await self.runner.read(lambda store: store.get_application(application_id))

    async def list_for_student(self, student_id: UUID) -> List[Application]:
        return await self.runner.read(lambda store: store.applications_for_student(student_id))

    async def list_for_supervisor(
        self, supervisor_id: UUID, status: Optional[ApplicationStatus] = None
    ) -> List[Application]:
        return await self.runner.read(
            lambda store: store.applications_for_supervisor(supervisor_id, status)
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _new_application(
        student: Student,
        supervisor_id: UUID,
        details: ProjectDetails,
        partner_id: Optional[UUID],
    ) -> Application:
        application = Application(
            id=uuid.uuid4(),
            student_id=student.id,
            supervisor_id=supervisor_id,
            project_title=details.title.strip(),
            project_description=details.description.strip(),
            has_partner=partner_id is not None,
            partner_id=partner_id,
            linked_application_id=None,
            is_lead_application=True,
        )
        application.set_status(ApplicationStatus.PENDING)
        return application

    @staticmethod
    def _link(lead: Application, follower: Application) -> None:
        lead.linked_application_id = follower.id
        lead.is_lead_application = True
        follower.linked_application_id = lead.id
        follower.is_lead_application = False

    @staticmethod
    async def _load_unit(store: RecordStore, application: Application) -> List[Application]:
        """The application plus its linked partner, if the link is intact."""
        if application.linked_application_id is None:
            return [application]

        linked = await store.get_application(application.linked_application_id)
        if linked is None or linked.linked_application_id != application.id:
            logger.warning(
                "linked_application_broken",
                application_id=str(application.id),
                linked_application_id=str(application.linked_application_id),
            )
            return [application]
        return [application, linked]
