"""Application model."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid

from app.db.base import Base
from app.utils.constants import ACTIVE_APPLICATION_STATUSES, ApplicationStatus
from app.utils.helpers import application_key


class Application(Base):
    """Student application to a supervisor."""

    __tablename__ = "applications"
    __table_args__ = (
        # NULL once rejected, so a student may apply again after a rejection
        UniqueConstraint("active_key", name="unique_active_student_supervisor_application"),
    )

    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id"), nullable=False, index=True)
    supervisor_id = Column(Uuid(as_uuid=True), ForeignKey("supervisors.id"), nullable=False, index=True)

    # Project details
    project_title = Column(String(255), nullable=False)
    project_description = Column(Text, nullable=False)

    # Status tracking
    status = Column(String(20), default=ApplicationStatus.PENDING.value, nullable=False, index=True)
    supervisor_feedback = Column(Text)
    response_date = Column(DateTime)
    resubmitted_date = Column(DateTime)

    # Partner snapshot taken at submission time
    has_partner = Column(Boolean, default=False, nullable=False)
    partner_id = Column(Uuid(as_uuid=True), nullable=True, index=True)

    # Linked pair (soft reference, the two rows are inserted in one flush)
    linked_application_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    is_lead_application = Column(Boolean, default=True, nullable=False)

    active_key = Column(String(80), nullable=True)

    # Optimistic concurrency token
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_linked(self) -> bool:
        return self.linked_application_id is not None

    def set_status(self, status: ApplicationStatus) -> None:
        """Change status and keep the active-application key in step."""
        self.status = status.value
        if status in ACTIVE_APPLICATION_STATUSES:
            self.active_key = application_key(self.student_id, self.supervisor_id)
        else:
            self.active_key = None

    def __repr__(self):
        return f"<Application {self.student_id} -> {self.supervisor_id} ({self.status})>"
