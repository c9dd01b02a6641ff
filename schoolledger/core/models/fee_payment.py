"""Fee payment: one payment event for a student and month, itemized per fee head. Append-only."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from schoolledger.db.session import Base


class FeePayment(Base):
    """Payment against a student's dues for one month. total_amount_paid equals the sum of its items."""

    __tablename__ = "fee_payments"
    __table_args__ = (
        CheckConstraint("total_amount_paid >= 1", name="chk_fee_payment_total_min"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id", ondelete="RESTRICT"), nullable=False, index=True)
    # Denormalized from the student at payment time, for reporting
    class_id = Column(UUID(as_uuid=True), ForeignKey("classes.id"), nullable=False, index=True)
    month_year = Column(String(7), nullable=False, index=True)  # YYYY-MM
    payment_date = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    received_by = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    total_amount_paid = Column(Numeric(12, 2), nullable=False)
    remarks = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    student = relationship("Student")
    receiver = relationship("User", foreign_keys=[received_by])
    items = relationship(
        "FeePaymentItem",
        back_populates="payment",
        cascade="all, delete-orphan",
        order_by="FeePaymentItem.position",
    )


class FeePaymentItem(Base):
    """One (fee head, amount) line of a payment. position keeps the allocation order."""

    __tablename__ = "fee_payment_items"
    __table_args__ = (
        UniqueConstraint("payment_id", "position", name="uq_fee_payment_item_position"),
        CheckConstraint("amount_paid > 0", name="chk_fee_payment_item_amount_positive"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    payment_id = Column(
        UUID(as_uuid=True),
        ForeignKey("fee_payments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    fee_head_id = Column(
        UUID(as_uuid=True),
        ForeignKey("fee_heads.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False)
    amount_paid = Column(Numeric(12, 2), nullable=False)

    payment = relationship("FeePayment", back_populates="items")
    fee_head = relationship("FeeHead")
