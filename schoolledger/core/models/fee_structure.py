"""Fee structure: amount owed per class, fee head and month."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from schoolledger.db.session import Base


class FeeStructure(Base):
    """
    "In school S, class C, for fee head H, in month M, the amount owed is A".
    At most one row per (school_id, class_id, fee_head_id, month_year); writes are upserts.
    """

    __tablename__ = "fee_structures"
    __table_args__ = (
        UniqueConstraint(
            "school_id",
            "class_id",
            "fee_head_id",
            "month_year",
            name="uq_fee_structure_school_class_head_month",
        ),
        CheckConstraint("amount >= 0", name="chk_fee_structure_amount_non_negative"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    class_id = Column(UUID(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    fee_head_id = Column(
        UUID(as_uuid=True),
        ForeignKey("fee_heads.id", ondelete="RESTRICT"),
        nullable=False,
    )
    amount = Column(Numeric(12, 2), nullable=False)
    month_year = Column(String(7), nullable=False, index=True)  # YYYY-MM
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    school_class = relationship("SchoolClass", foreign_keys=[class_id])
    fee_head = relationship("FeeHead")
