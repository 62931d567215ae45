import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from academics.db.session import Base


class Student(Base):
    """
    Student directory entry. class_id points at the student's current class and is the
    only column this service writes, and only through promotion processing.
    """

    __tablename__ = "students"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    admission_number = Column(String(50), nullable=False, unique=True)
    class_id = Column(UUID(as_uuid=True), ForeignKey("classes.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="ACTIVE")  # ACTIVE | LEFT | GRADUATED
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    school_class = relationship("SchoolClass", foreign_keys=[class_id])

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
