"""
Final per-subject score for a student in a term. Produced upstream by assessment collection;
mutable while the term is open. This service only reads it.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from academics.db.session import Base


class SubjectResult(Base):
    __tablename__ = "subject_results"
    __table_args__ = (
        UniqueConstraint("student_id", "subject_id", "term_id", name="uq_subject_result_student_subject_term"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    term_id = Column(UUID(as_uuid=True), ForeignKey("academic_terms.id", ondelete="RESTRICT"), nullable=False, index=True)
    subject_id = Column(UUID(as_uuid=True), ForeignKey("subjects.id"), nullable=False)
    total_score = Column(Numeric(5, 2), nullable=False)  # 0-100
    remarks = Column(Text, nullable=True)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    subject = relationship("Subject", lazy="joined")
