"""Partnership request model."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, Uuid

from app.db.base import Base
from app.utils.constants import RequestStatus
from app.utils.helpers import pair_key


class PartnershipRequest(Base):
    """A student's request to pair with another student."""

    __tablename__ = "partnership_requests"
    __table_args__ = (
        # NULL once the request is terminated, so only pending requests collide
        UniqueConstraint("pending_pair_key", name="unique_pending_partnership_pair"),
    )

    requester_id = Column(Uuid(as_uuid=True), ForeignKey("students.id"), nullable=False, index=True)
    target_id = Column(Uuid(as_uuid=True), ForeignKey("students.id"), nullable=False, index=True)
    status = Column(String(20), default=RequestStatus.PENDING.value, nullable=False, index=True)
    responded_at = Column(DateTime, nullable=True)
    pending_pair_key = Column(String(80), nullable=True)

    # Optimistic concurrency token
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @classmethod
    def open(cls, requester_id, target_id) -> "PartnershipRequest":
        """Build a new pending request."""
        return cls(
            id=uuid.uuid4(),
            requester_id=requester_id,
            target_id=target_id,
            status=RequestStatus.PENDING.value,
            pending_pair_key=pair_key(requester_id, target_id),
        )

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING.value

    def involves(self, student_id) -> bool:
        return student_id in (self.requester_id, self.target_id)

    def close(self, status: RequestStatus, responded_at) -> None:
        """Terminate the request; a closed request is never reopened."""
        self.status = status.value
        self.responded_at = responded_at
        self.pending_pair_key = None

    def __repr__(self):
        return f"<PartnershipRequest {self.requester_id} -> {self.target_id} ({self.status})>"
