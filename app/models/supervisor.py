"""Supervisor model."""

from sqlalchemy import JSON, CheckConstraint, Column, Integer, String

from app.config import settings
from app.db.base import Base
from app.utils.constants import AvailabilityStatus


class Supervisor(Base):
    """Supervisor profile and project capacity."""

    __tablename__ = "supervisors"
    __table_args__ = (
        CheckConstraint("current_capacity >= 0", name="check_current_capacity_non_negative"),
    )

    full_name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    department = Column(String(255))
    research_interests = Column(JSON, default=list)

    # Capacity (current_capacity written only by the application engine)
    current_capacity = Column(Integer, default=0, nullable=False)
    max_capacity = Column(Integer, default=settings.DEFAULT_SUPERVISOR_CAPACITY, nullable=False)
    availability_status = Column(
        String(20), default=AvailabilityStatus.AVAILABLE.value, nullable=False
    )  # available, limited, unavailable

    # Optimistic concurrency token
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_full(self) -> bool:
        return self.current_capacity >= self.max_capacity

    @property
    def accepting_applications(self) -> bool:
        return (
            self.availability_status != AvailabilityStatus.UNAVAILABLE.value
            and not self.is_full
        )

    @property
    def closed_to_applications(self) -> bool:
        """Full and marked unavailable."""
        return (
            self.availability_status == AvailabilityStatus.UNAVAILABLE.value
            and self.is_full
        )

    def __repr__(self):
        return f"<Supervisor {self.full_name} {self.current_capacity}/{self.max_capacity}>"
