"""Student model."""

from sqlalchemy import JSON, Column, ForeignKey, Integer, String, Uuid

from app.db.base import Base
from app.utils.constants import PartnershipStatus


class Student(Base):
    """Student profile with pairing state."""

    __tablename__ = "students"

    full_name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    department = Column(String(255))

    # JSON fields
    skills = Column(JSON, default=list)  # ["Python", "React", ...]
    interests = Column(JSON, default=list)

    # Pairing (written only by the partnership service)
    partner_id = Column(Uuid(as_uuid=True), ForeignKey("students.id"), nullable=True, index=True)
    partnership_status = Column(
        String(20), default=PartnershipStatus.NONE.value, nullable=False, index=True
    )  # none, pending_sent, pending_received, paired

    # Optimistic concurrency token
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_paired(self) -> bool:
        return self.partnership_status == PartnershipStatus.PAIRED.value and self.partner_id is not None

    def reset_partnership(self) -> None:
        self.partner_id = None
        self.partnership_status = PartnershipStatus.NONE.value

    def __repr__(self):
        return f"<Student {self.full_name} ({self.partnership_status})>"
