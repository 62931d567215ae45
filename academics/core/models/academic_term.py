import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Date, DateTime, String
from sqlalchemy.dialects.postgresql import UUID

from academics.db.session import Base


class AcademicTerm(Base):
    """
    Bounded academic period that scopes subject results, report cards and promotion runs.
    Owned by the term directory; only one term is expected to be is_current at a time.
    """

    __tablename__ = "academic_terms"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(50), nullable=False)  # e.g. "2025/2026 Term 3"
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    is_current = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
