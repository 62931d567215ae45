"""
Append-only audit of class transitions. One row per (student, term) once processed;
rows are never updated or deleted.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from academics.db.session import Base


class PromotionRecord(Base):
    __tablename__ = "promotion_records"
    __table_args__ = (
        UniqueConstraint("student_id", "term_id", name="uq_promotion_record_student_term"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    term_id = Column(UUID(as_uuid=True), ForeignKey("academic_terms.id", ondelete="RESTRICT"), nullable=False)
    from_class_id = Column(UUID(as_uuid=True), ForeignKey("classes.id"), nullable=False)
    to_class_id = Column(UUID(as_uuid=True), ForeignKey("classes.id"), nullable=False)
    action = Column(String(20), nullable=False)  # PROMOTE | RETAIN
    reason = Column(Text, nullable=True)
    processed_by = Column(UUID(as_uuid=True), nullable=True)
    processed_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
