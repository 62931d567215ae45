import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, Numeric, String
from sqlalchemy.dialects.postgresql import UUID

from academics.db.session import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GradingScale(Base):
    """One score band of the grading policy (e.g. A: 80-100, GPA 4.0). Bands must not overlap."""

    __tablename__ = "grading_scales"
    __table_args__ = (
        CheckConstraint("min_score >= 0 AND max_score <= 100", name="ck_grading_scale_range"),
        CheckConstraint("min_score <= max_score", name="ck_grading_scale_order"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    grade = Column(String(10), nullable=False)
    min_score = Column(Numeric(5, 2), nullable=False)
    max_score = Column(Numeric(5, 2), nullable=False)
    gpa_point = Column(Numeric(4, 2), nullable=False, default=0)
    remark = Column(String(100), nullable=True)  # e.g. "Excellent"
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
