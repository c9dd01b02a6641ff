import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from schoolledger.db.session import Base


class School(Base):
    """
    Tenant (school) in the multi-tenant platform.

    - id is the tenant identifier; every other table carries it as school_id.
    - owner_user_id is written after the owner User exists (registration back-fills it
      inside the same transaction), so it is nullable at the column level.
    """

    __tablename__ = "schools"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_name = Column(String(255), nullable=False)
    institution_type = Column(String(100), nullable=False)
    address = Column(String(500), nullable=True)
    phone = Column(String(50), nullable=True)
    owner_user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", use_alter=True, name="fk_schools_owner_user_id"),
        nullable=True,
        index=True,
    )
    subscription_tier = Column(String(30), nullable=False, default="free")
    payment_status = Column(String(30), nullable=False, default="pending")
    is_onboarding_complete = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    owner = relationship("User", foreign_keys=[owner_user_id], post_update=True)
    users = relationship("User", back_populates="school", foreign_keys="User.school_id")
