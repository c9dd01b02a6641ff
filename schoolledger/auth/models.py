import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from schoolledger.db.session import Base


class User(Base):
    """Login account within a school. Email is unique across all schools."""

    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # Owning school
    school_id = Column(UUID(as_uuid=True), ForeignKey("schools.id"), nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    # Stored lowercase; uniqueness is global so login needs only the email
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(Text, nullable=False)
    # Admin, Teacher, Accountant, Parent, Student, SuperAdmin
    role = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default="ACTIVE")
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    school = relationship("School", back_populates="users", foreign_keys=[school_id])
