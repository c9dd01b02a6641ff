import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from schoolledger.db.session import Base


class Grade(Base):
    """Marks of one student in one subject of one exam. Natural key: (school, student, exam, subject)."""

    __tablename__ = "grades"
    __table_args__ = (
        UniqueConstraint("school_id", "student_id", "exam_id", "subject", name="uq_grade_school_student_exam_subject"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    class_id = Column(UUID(as_uuid=True), ForeignKey("classes.id"), nullable=False, index=True)
    exam_id = Column(UUID(as_uuid=True), ForeignKey("exams.id", ondelete="RESTRICT"), nullable=False, index=True)
    subject = Column(String(100), nullable=False, index=True)
    total_marks = Column(Numeric(6, 2), nullable=False, default=100)
    obtained_marks = Column(Numeric(6, 2), nullable=False)
    remarks = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    student = relationship("Student", foreign_keys=[student_id])
    exam = relationship("Exam")
