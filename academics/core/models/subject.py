import uuid

from sqlalchemy import Column, String
from sqlalchemy.dialects.postgresql import UUID

from academics.db.session import Base


class Subject(Base):
    """Subject master (Mathematics, English). Owned by the academics directory."""

    __tablename__ = "subjects"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    code = Column(String(20), nullable=True, unique=True)
