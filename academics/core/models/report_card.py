"""
Report card per (student, term). Computed fields are overwritten on every regeneration;
class_teacher_remark and principal_remark belong to staff and are only changed by the remarks update.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from academics.db.session import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReportCard(Base):
    __tablename__ = "report_cards"
    __table_args__ = (
        UniqueConstraint("student_id", "term_id", name="uq_report_card_student_term"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    term_id = Column(UUID(as_uuid=True), ForeignKey("academic_terms.id", ondelete="RESTRICT"), nullable=False)
    class_id = Column(UUID(as_uuid=True), ForeignKey("classes.id"), nullable=False, index=True)
    total_score = Column(Numeric(8, 2), nullable=False)
    average_score = Column(Numeric(5, 2), nullable=False)
    gpa = Column(Numeric(4, 2), nullable=True)
    class_position = Column(Integer, nullable=True)
    total_students = Column(Integer, nullable=True)
    class_teacher_remark = Column(Text, nullable=True)
    principal_remark = Column(Text, nullable=True)
    generated_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    student = relationship("Student", lazy="joined")
    subjects = relationship(
        "ReportCardSubject",
        back_populates="report_card",
        cascade="all, delete-orphan",
        order_by="ReportCardSubject.subject_name",
        lazy="selectin",
    )


class ReportCardSubject(Base):
    """Graded subject line on a report card. Updated in place by subject on regeneration."""

    __tablename__ = "report_card_subjects"
    __table_args__ = (
        UniqueConstraint("report_card_id", "subject_id", name="uq_report_card_subject"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    report_card_id = Column(
        UUID(as_uuid=True), ForeignKey("report_cards.id", ondelete="CASCADE"), nullable=False, index=True
    )
    subject_id = Column(UUID(as_uuid=True), ForeignKey("subjects.id"), nullable=False)
    subject_name = Column(String(100), nullable=False)
    total_score = Column(Numeric(5, 2), nullable=False)
    grade = Column(String(10), nullable=False)
    gpa_point = Column(Numeric(4, 2), nullable=False)
    remark = Column(String(100), nullable=True)  # from grading band
    result_remarks = Column(Text, nullable=True)  # from the subject result

    report_card = relationship("ReportCard", back_populates="subjects")
