import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from schoolledger.db.session import Base


class Student(Base):
    """
    Student enrolled in one class of a school.
    class_id is the student's current class; fee dues are resolved through it.
    """

    __tablename__ = "students"
    __table_args__ = (
        UniqueConstraint("class_id", "roll_number", name="uq_student_class_roll_number"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    class_id = Column(UUID(as_uuid=True), ForeignKey("classes.id"), nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    # NULLs do not collide in the unique constraint, so students without a roll number are fine
    roll_number = Column(String(50), nullable=True)
    parent_contact = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    school_class = relationship("SchoolClass", foreign_keys=[class_id])
