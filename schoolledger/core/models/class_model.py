"""Tenant-scoped classes (e.g. Nursery, Grade 1). Model named SchoolClass to avoid Python 'class' keyword."""
import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from schoolledger.db.session import Base


class SchoolClass(Base):
    """Tenant-scoped class; (name, section) is unique within a school."""

    __tablename__ = "classes"
    __table_args__ = (
        UniqueConstraint("school_id", "name", "section", name="uq_class_school_name_section"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    section = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    school = relationship("School", backref="school_classes")
