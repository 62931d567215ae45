"""Class directory (e.g. Grade 1, JSS 2). Model named SchoolClass to avoid Python 'class' keyword."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import UUID

from academics.db.session import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SchoolClass(Base):
    """Class master owned by the school directory. Read-only for this service."""

    __tablename__ = "classes"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(50), nullable=False, unique=True)
    display_order = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
