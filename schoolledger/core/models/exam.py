import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from schoolledger.db.session import Base


class Exam(Base):
    """Examination (e.g. Mid-Terms) within an academic year string such as "2025-2026"."""

    __tablename__ = "exams"
    __table_args__ = (
        UniqueConstraint("school_id", "name", "academic_year", name="uq_exam_school_name_year"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    academic_year = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
