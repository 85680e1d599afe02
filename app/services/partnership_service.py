"""
Student partnership workflow.

Owns the pairing lifecycle of a student:

    none -> pending_sent | pending_received -> paired -> none (unpair)

with pending states falling back to none on reject or cancel. This service is
the only writer of ``Student.partner_id`` / ``Student.partnership_status`` and
of ``PartnershipRequest`` rows. Every transition touches two students and at
most one request plus the requests cleaned up on accept, and is committed as
one optimistic transaction through ``TransactionRunner``.
"""

from typing import List, Optional
from uuid import UUID

import structlog

from app.db.store import RecordStore, TransactionRunner
from app.models import PartnershipRequest, Student
from app.services.results import ErrorKind, ServiceResult
from app.utils.constants import (
    PartnershipStatus,
    RequestAction,
    RequestDirection,
    RequestStatus,
)
from app.utils.helpers import utcnow

logger = structlog.get_logger(__name__)


class PartnershipService:
    """Pairing state machine for students."""

    def __init__(self, runner: TransactionRunner):
        self.runner = runner

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    async def send_request(self, requester_id: UUID, target_id: UUID) -> ServiceResult[UUID]:
        """
        Send a partnership request from ``requester_id`` to ``target_id``.

        Both students must currently be unpaired with nothing pending. A
        pending request in the opposite direction is reported as
        RECIPROCAL_REQUEST_EXISTS so the caller accepts it instead.
        """

        async def work(store: RecordStore) -> ServiceResult[UUID]:
            if requester_id == target_id:
                return ServiceResult.failure(
                    ErrorKind.TARGET_UNAVAILABLE, "You cannot send a request to yourself"
                )

            students = await store.get_students([requester_id, target_id])
            requester = students.get(requester_id)
            target = students.get(target_id)

            if requester is None:
                return ServiceResult.failure(ErrorKind.STUDENT_NOT_FOUND, "Student profile not found")
            if target is None:
                return ServiceResult.failure(
                    ErrorKind.TARGET_UNAVAILABLE, "Target student cannot receive requests"
                )

            reverse = await store.pending_request_from(target_id, requester_id)
            if reverse is not None:
                return ServiceResult.failure(
                    ErrorKind.RECIPROCAL_REQUEST_EXISTS,
                    "This student has already sent you a request. Check your incoming requests.",
                )

            if requester.partnership_status != PartnershipStatus.NONE.value:
                if requester.partnership_status == PartnershipStatus.PAIRED.value:
                    message = "You are already paired with another student"
                else:
                    message = "You already have a pending partnership request"
                return ServiceResult.failure(ErrorKind.ALREADY_PARTNERED_OR_PENDING, message)

            if target.partnership_status != PartnershipStatus.NONE.value:
                return ServiceResult.failure(
                    ErrorKind.TARGET_UNAVAILABLE, "Target student cannot receive requests at this time"
                )

            request = PartnershipRequest.open(requester_id, target_id)
            store.add(request)
            requester.partnership_status = PartnershipStatus.PENDING_SENT.value
            target.partnership_status = PartnershipStatus.PENDING_RECEIVED.value

            return ServiceResult.success(request.id, "Partnership request created successfully")

        result = await self.runner.run(
            "send_partnership_request",
            work,
            requester_id=str(requester_id),
            target_id=str(target_id),
        )
        if result.ok:
            logger.info(
                "partnership_request_sent",
                request_id=str(result.value),
                requester_id=str(requester_id),
                target_id=str(target_id),
            )
        return result

    async def respond(
        self, request_id: UUID, target_id: UUID, action: RequestAction
    ) -> ServiceResult[None]:
        """Accept or reject a pending request addressed to ``target_id``."""

        async def work(store: RecordStore) -> ServiceResult[None]:
            request = await store.get_request(request_id)
            if request is None or target_id not in (request.requester_id, request.target_id):
                return ServiceResult.failure(
                    ErrorKind.REQUEST_NOT_ACTIONABLE, "Partnership request not found"
                )
            if request.target_id != target_id:
                return ServiceResult.failure(
                    ErrorKind.UNAUTHORIZED, "Unauthorized to respond to this request"
                )
            if not request.is_pending:
                return ServiceResult.failure(
                    ErrorKind.REQUEST_NOT_ACTIONABLE, "Request already processed"
                )

            if action == RequestAction.ACCEPT:
                return await self._accept(store, request)
            return await self._reject(store, request)

        result = await self.runner.run(
            "respond_partnership_request",
            work,
            request_id=str(request_id),
            target_id=str(target_id),
            action=action.value,
        )
        if result.ok:
            logger.info(
                "partnership_accepted" if action == RequestAction.ACCEPT else "partnership_rejected",
                request_id=str(request_id),
                target_id=str(target_id),
            )
        return result

    async def cancel(self, request_id: UUID, requester_id: UUID) -> ServiceResult[None]:
        """Withdraw a pending request; only its requester may do so."""

        async def work(store: RecordStore) -> ServiceResult[None]:
            request = await store.get_request(request_id)
            if request is None or requester_id not in (request.requester_id, request.target_id):
                return ServiceResult.failure(
                    ErrorKind.REQUEST_NOT_ACTIONABLE, "Partnership request not found"
                )
            if request.requester_id != requester_id:
                return ServiceResult.failure(
                    ErrorKind.UNAUTHORIZED, "Unauthorized to cancel this request"
                )
            if not request.is_pending:
                return ServiceResult.failure(
                    ErrorKind.REQUEST_NOT_ACTIONABLE, "Can only cancel pending requests"
                )

            students = await store.get_students([request.requester_id, request.target_id])
            request.close(RequestStatus.CANCELLED, utcnow())
            self._release(students.values(), request)
            return ServiceResult.success(message="Partnership request cancelled")

        result = await self.runner.run(
            "cancel_partnership_request",
            work,
            request_id=str(request_id),
            requester_id=str(requester_id),
        )
        if result.ok:
            logger.info("partnership_request_cancelled", request_id=str(request_id))
        return result

    async def unpair(self, student_id: UUID) -> ServiceResult[None]:
        """
        Dissolve the student's current partnership.

        Applications already submitted keep their partner snapshot and link;
        they are not touched here.
        """

        async def work(store: RecordStore) -> ServiceResult[None]:
            student = await store.get_student(student_id)
            if student is None:
                return ServiceResult.failure(ErrorKind.STUDENT_NOT_FOUND, "Student profile not found")
            if not student.is_paired:
                return ServiceResult.failure(ErrorKind.NOT_PAIRED, "You are not currently paired")

            partner = await store.get_student(student.partner_id)
            student.reset_partnership()
            if partner is not None and partner.partner_id == student.id:
                partner.reset_partnership()
            else:
                logger.warning(
                    "unpair_partner_not_pointing_back",
                    student_id=str(student_id),
                    partner_id=str(partner.id) if partner else None,
                )
            return ServiceResult.success(message="Students unpaired successfully")

        result = await self.runner.run("unpair_students", work, student_id=str(student_id))
        if result.ok:
            logger.info("students_unpaired", student_id=str(student_id))
        return result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    async def list_requests(
        self,
        student_id: UUID,
        direction: RequestDirection = RequestDirection.ALL,
        status: Optional[RequestStatus] = RequestStatus.PENDING,
    ) -> List[PartnershipRequest]:
        return await self.runner.read(
            lambda store: store.list_requests(student_id, direction, status)
        )

    async def list_available_students(self, caller_id: UUID) -> List[Student]:
        return await self.runner.read(lambda store: store.available_students(exclude_id=caller_id))

    async def get_student(self, student_id: UUID) -> Optional[Student]:
        return await self.runner.read(lambda store: store.get_student(student_id))

    async def current_partner_id(self, store: RecordStore, student_id: UUID) -> Optional[UUID]:
        """
        Read path for other engines: the student's partner, by value.

        Returns None unless the pairing is symmetric, i.e. the partner record
        exists and points back at the student.
        """
        student = await store.get_student(student_id)
        if student is None or not student.is_paired:
            return None

        partner = await store.get_student(student.partner_id)
        if partner is None:
            logger.warning(
                "partner_not_found",
                student_id=str(student_id),
                partner_id=str(student.partner_id),
            )
            return None
        if partner.partner_id != student.id:
            logger.warning(
                "partnership_not_symmetric",
                student_id=str(student_id),
                partner_id=str(partner.id),
            )
            return None
        return partner.id

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    async def _accept(self, store: RecordStore, request: PartnershipRequest) -> ServiceResult[None]:
        students = await store.get_students([request.requester_id, request.target_id])
        requester = students.get(request.requester_id)
        target = students.get(request.target_id)
        if requester is None or target is None:
            return ServiceResult.failure(
                ErrorKind.REQUEST_NOT_ACTIONABLE, "One or both students no longer exist"
            )
        if requester.partner_id is not None or target.partner_id is not None:
            return ServiceResult.failure(
                ErrorKind.ALREADY_PARTNERED_OR_PENDING,
                "One of the students is already paired with another student",
            )

        now = utcnow()
        request.close(RequestStatus.ACCEPTED, now)

        requester.partner_id = target.id
        requester.partnership_status = PartnershipStatus.PAIRED.value
        target.partner_id = requester.id
        target.partnership_status = PartnershipStatus.PAIRED.value

        # A paired student cannot stay a party to unrelated pending requests
        others = [
            other
            for other in await store.pending_requests_involving([requester.id, target.id])
            if other.id != request.id
        ]
        if others:
            await self._cancel_orphans(store, others, paired_ids={requester.id, target.id}, now=now)
        return ServiceResult.success(message="Partnership accepted successfully")

    async def _reject(self, store: RecordStore, request: PartnershipRequest) -> ServiceResult[None]:
        students = await store.get_students([request.requester_id, request.target_id])
        request.close(RequestStatus.REJECTED, utcnow())
        self._release(students.values(), request)
        return ServiceResult.success(message="Partnership request rejected")

    async def _cancel_orphans(
        self,
        store: RecordStore,
        requests: List[PartnershipRequest],
        paired_ids: set,
        now,
    ) -> None:
        """Cancel requests left dangling by a pairing and free their other parties."""
        for other in requests:
            other.close(RequestStatus.CANCELLED, now)

        counterpart_ids = {
            sid
            for other in requests
            for sid in (other.requester_id, other.target_id)
            if sid not in paired_ids
        }
        counterparts = await store.get_students(counterpart_ids)
        still_pending = await store.pending_requests_involving(counterpart_ids) if counterparts else []
        closed = {r.id for r in requests}

        for counterpart in counterparts.values():
            if counterpart.is_paired:
                continue
            if any(r.involves(counterpart.id) for r in still_pending if r.id not in closed):
                continue
            counterpart.partnership_status = PartnershipStatus.NONE.value

        logger.info(
            "orphaned_partnership_requests_cancelled",
            count=len(requests),
            paired_ids=[str(sid) for sid in paired_ids],
        )

    @staticmethod
    def _release(students, request: PartnershipRequest) -> None:
        """Return both parties of a closed request to ``none``."""
        for student in students:
            if student.is_paired:
                # Legacy data: a paired student still party to an open request
                continue
            if student.id in (request.requester_id, request.target_id):
                student.partnership_status = PartnershipStatus.NONE.value
