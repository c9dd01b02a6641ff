"""Fee head master (Tuition, Transport, Exam). Tenant-scoped."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from schoolledger.db.session import Base


class FeeHead(Base):
    """Named fee category. Name is unique within a school; is_one_time is informational."""

    __tablename__ = "fee_heads"
    __table_args__ = (
        UniqueConstraint("school_id", "name", name="uq_fee_head_school_name"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    is_one_time = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    school = relationship("School", backref="fee_heads")
