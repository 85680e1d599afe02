"""
Record store adapter and optimistic transaction runner.

``RecordStore`` wraps one ``AsyncSession`` and exposes the reads and writes the
services need for students, supervisors, partnership requests and
applications. It holds no business rules.

``TransactionRunner`` executes a unit of work as a single optimistic
transaction:

1. open a fresh session and read every record the operation touches
2. let the operation mutate the loaded ORM objects
3. commit; every UPDATE is guarded by the row's ``version`` column
4. on ``StaleDataError`` (a row changed since it was read) or
   ``IntegrityError`` (a unique pending-pair / active-application key was
   taken concurrently) roll back and retry from step 1

Retries are driven by tenacity. When attempts are exhausted the operation
returns a ``CONTENTION`` result instead of raising.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, TypeVar
from uuid import UUID

import structlog
from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

from app.config import settings
from app.models import Application, PartnershipRequest, Student, Supervisor
from app.services.results import ErrorKind, ServiceResult
from app.utils.constants import (
    ACTIVE_APPLICATION_STATUSES,
    ApplicationStatus,
    PartnershipStatus,
    RequestDirection,
    RequestStatus,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Exceptions that mean "someone else wrote first", never a bug in the operation
CONFLICT_ERRORS = (StaleDataError, IntegrityError)


@dataclass(frozen=True)
class SupervisorCapacityView:
    """Read-only capacity summary, always rebuilt from the Supervisor row."""

    supervisor_id: UUID
    full_name: str
    current_capacity: int
    max_capacity: int
    remaining: int
    is_full: bool
    availability_status: str
    accepting_applications: bool

    @classmethod
    def from_supervisor(cls, supervisor: Supervisor) -> "SupervisorCapacityView":
        return cls(
            supervisor_id=supervisor.id,
            full_name=supervisor.full_name,
            current_capacity=supervisor.current_capacity,
            max_capacity=supervisor.max_capacity,
            remaining=max(0, supervisor.max_capacity - supervisor.current_capacity),
            is_full=supervisor.is_full,
            availability_status=supervisor.availability_status,
            accepting_applications=supervisor.accepting_applications,
        )


class RecordStore:
    """Data access for the five record kinds, bound to one session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ------------------------------------------------------------------
    # Students
    # ------------------------------------------------------------------
    async def get_student(self, student_id: UUID) -> Optional[Student]:
        return await self.session.get(Student, student_id)

    async def get_students(self, student_ids: Iterable[UUID]) -> Dict[UUID, Student]:
        ids = list({sid for sid in student_ids if sid is not None})
        if not ids:
            return {}
        result = await self.session.execute(select(Student).where(Student.id.in_(ids)))
        return {student.id: student for student in result.scalars().all()}

    async def available_students(self, exclude_id: Optional[UUID] = None) -> List[Student]:
        query = select(Student).where(
            Student.partnership_status == PartnershipStatus.NONE.value
        )
        if exclude_id is not None:
            query = query.where(Student.id != exclude_id)
        result = await self.session.execute(query.order_by(Student.full_name))
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Supervisors
    # ------------------------------------------------------------------
    async def get_supervisor(self, supervisor_id: UUID) -> Optional[Supervisor]:
        return await self.session.get(Supervisor, supervisor_id)

    async def list_supervisors(self) -> List[Supervisor]:
        result = await self.session.execute(select(Supervisor).order_by(Supervisor.full_name))
        return list(result.scalars().all())

    async def capacity_view(self, supervisor_id: UUID) -> Optional[SupervisorCapacityView]:
        supervisor = await self.get_supervisor(supervisor_id)
        if supervisor is None:
            return None
        return SupervisorCapacityView.from_supervisor(supervisor)

    # ------------------------------------------------------------------
    # Partnership requests
    # ------------------------------------------------------------------
    async def get_request(self, request_id: UUID) -> Optional[PartnershipRequest]:
        return await self.session.get(PartnershipRequest, request_id)

    async def pending_request_from(
        self, requester_id: UUID, target_id: UUID
    ) -> Optional[PartnershipRequest]:
        """The pending request sent by ``requester_id`` to ``target_id``, if any."""
        result = await self.session.execute(
            select(PartnershipRequest).where(
                PartnershipRequest.requester_id == requester_id,
                PartnershipRequest.target_id == target_id,
                PartnershipRequest.status == RequestStatus.PENDING.value,
            )
        )
        return result.scalars().first()

    async def pending_requests_involving(
        self, student_ids: Iterable[UUID]
    ) -> List[PartnershipRequest]:
        ids = list(set(student_ids))
        result = await self.session.execute(
            select(PartnershipRequest).where(
                PartnershipRequest.status == RequestStatus.PENDING.value,
                or_(
                    PartnershipRequest.requester_id.in_(ids),
                    PartnershipRequest.target_id.in_(ids),
                ),
            )
        )
        return list(result.scalars().all())

    async def list_requests(
        self,
        student_id: UUID,
        direction: RequestDirection = RequestDirection.ALL,
        status: Optional[RequestStatus] = RequestStatus.PENDING,
    ) -> List[PartnershipRequest]:
        if direction == RequestDirection.INCOMING:
            condition = PartnershipRequest.target_id == student_id
        elif direction == RequestDirection.OUTGOING:
            condition = PartnershipRequest.requester_id == student_id
        else:
            condition = or_(
                PartnershipRequest.target_id == student_id,
                PartnershipRequest.requester_id == student_id,
            )

        query = select(PartnershipRequest).where(condition)
        if status is not None:
            query = query.where(PartnershipRequest.status == status.value)

        result = await self.session.execute(
            query.order_by(PartnershipRequest.created_at.desc())
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Applications
    # ------------------------------------------------------------------
    async def get_application(self, application_id: UUID) -> Optional[Application]:
        return await self.session.get(Application, application_id)

    async def active_application(
        self, student_id: UUID, supervisor_id: UUID
    ) -> Optional[Application]:
        result = await self.session.execute(
            select(Application).where(
                Application.student_id == student_id,
                Application.supervisor_id == supervisor_id,
                Application.status.in_([s.value for s in ACTIVE_APPLICATION_STATUSES]),
            )
        )
        return result.scalars().first()

    async def applications_for_student(self, student_id: UUID) -> List[Application]:
        """Own applications plus those naming the student as partner."""
        result = await self.session.execute(
            select(Application)
            .where(or_(Application.student_id == student_id, Application.partner_id == student_id))
            .order_by(Application.created_at.desc())
        )
        return list(result.scalars().unique().all())

    async def applications_for_supervisor(
        self, supervisor_id: UUID, status: Optional[ApplicationStatus] = None
    ) -> List[Application]:
        query = select(Application).where(Application.supervisor_id == supervisor_id)
        if status is not None:
            query = query.where(Application.status == status.value)
        result = await self.session.execute(query.order_by(Application.created_at.desc()))
        return list(result.scalars().all())

    async def approved_applications(self, supervisor_id: UUID) -> List[Application]:
        result = await self.session.execute(
            select(Application).where(
                and_(
                    Application.supervisor_id == supervisor_id,
                    Application.status == ApplicationStatus.APPROVED.value,
                )
            )
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def add(self, record) -> None:
        self.session.add(record)

    def add_all(self, records: Iterable) -> None:
        self.session.add_all(list(records))


class TransactionRunner:
    """Runs units of work as optimistic transactions with bounded retry."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        max_attempts: Optional[int] = None,
        min_wait: Optional[float] = None,
        max_wait: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.max_attempts = max_attempts or settings.TRANSACTION_MAX_ATTEMPTS
        self.min_wait = settings.TRANSACTION_RETRY_MIN_WAIT if min_wait is None else min_wait
        self.max_wait = settings.TRANSACTION_RETRY_MAX_WAIT if max_wait is None else max_wait

    async def run(
        self,
        operation: str,
        work: Callable[[RecordStore], Awaitable[ServiceResult[T]]],
        **log_context,
    ) -> ServiceResult[T]:
        """
        Execute ``work`` until it commits, returns a failed result, or runs
        out of attempts.

        Args:
            operation: Name used in log events
            work: Coroutine function receiving a fresh ``RecordStore`` per attempt
            **log_context: Extra key-value pairs for log events

        Returns:
            The result of the last attempt, or a CONTENTION failure
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_random_exponential(multiplier=self.min_wait, max=self.max_wait),
            retry=retry_if_exception_type(CONFLICT_ERRORS),
            before_sleep=self._log_conflict(operation, log_context),
            reraise=False,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    return await self._attempt(work)
        except RetryError:
            logger.warning(
                "transaction_contention",
                operation=operation,
                attempts=self.max_attempts,
                **log_context,
            )
            return ServiceResult.failure(
                ErrorKind.CONTENTION,
                "The records changed concurrently too many times, please retry",
            )

    async def read(self, work: Callable[[RecordStore], Awaitable[T]]) -> T:
        """Run a read-only unit of work; nothing is committed."""
        async with self.session_factory() as session:
            return await work(RecordStore(session))

    async def _attempt(self, work: Callable[[RecordStore], Awaitable[ServiceResult[T]]]) -> ServiceResult[T]:
        async with self.session_factory() as session:
            try:
                result = await work(RecordStore(session))
                if result.ok:
                    await session.commit()
                else:
                    await session.rollback()
                return result
            except Exception:
                await session.rollback()
                raise

    @staticmethod
    def _log_conflict(operation: str, log_context: dict) -> Callable[[RetryCallState], None]:
        def before_sleep(retry_state: RetryCallState) -> None:
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            logger.info(
                "transaction_conflict_retry",
                operation=operation,
                attempt=retry_state.attempt_number,
                error_type=type(exc).__name__ if exc else None,
                **log_context,
            )

        return before_sleep
