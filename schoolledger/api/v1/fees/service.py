"""Fees service: fee heads, fee structures, payments and allocation. Financial writes are audited."""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.auth.models import User
from schoolledger.core.bulk_upsert import upsert_one
from schoolledger.core.exceptions import ConflictError, InvalidInputError, NotFoundError
from schoolledger.core.models import (
    FeeAuditLog,
    FeeHead,
    FeePayment,
    FeePaymentItem,
    FeeStructure,
    Student,
)
from schoolledger.core.schemas import validate_month_year
from schoolledger.core.tenant_service import get_class_or_404, get_fee_head_or_404, get_student_or_404

from .allocation import AllocationItem, allocate
from .ledger import fetch_structures, get_student_ledger, load_payments, outstanding_dues
from .schemas import (
    AllocationPreviewItem,
    AllocationPreviewRequest,
    AllocationPreviewResponse,
    FeeHeadCreate,
    FeeHeadResponse,
    FeePaymentCreate,
    FeePaymentItemIn,
    FeePaymentItemResponse,
    FeePaymentResponse,
    FeeStructureResponse,
    FeeStructureSet,
    LumpPaymentCreate,
)

logger = logging.getLogger(__name__)


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


CENT = Decimal("0.01")
# Numeric(12, 2)
MAX_AMOUNT = Decimal("9999999999.99")


def _to_money(val, label: str) -> Decimal:
    """Amount as stored: at most two decimal places and within the column range."""
    amount = _to_decimal(val)
    if not amount.is_finite() or abs(amount) > MAX_AMOUNT:
        raise InvalidInputError(f"{label} is out of range.")
    if amount != amount.quantize(CENT):
        raise InvalidInputError(f"{label} must not have more than two decimal places.")
    return amount.quantize(CENT)


# --- Audit helper ---
async def _log_fee_audit(
    db: AsyncSession,
    school_id: UUID,
    reference_table: str,
    reference_id: UUID,
    action_type: str,
    old_value: Optional[dict],
    new_value: Optional[dict],
    changed_by: Optional[UUID],
) -> None:
    log = FeeAuditLog(
        school_id=school_id,
        reference_table=reference_table,
        reference_id=reference_id,
        action_type=action_type,
        old_value=old_value,
        new_value=new_value,
        changed_by=changed_by,
    )
    db.add(log)


# --- Fee Head ---
def _fh_to_response(fh: FeeHead) -> FeeHeadResponse:
    return FeeHeadResponse(
        id=fh.id,
        school_id=fh.school_id,
        name=fh.name,
        is_one_time=fh.is_one_time,
        created_at=fh.created_at,
    )


async def create_fee_head(
    db: AsyncSession,
    school_id: UUID,
    payload: FeeHeadCreate,
) -> FeeHeadResponse:
    name = payload.name.strip()
    if not name:
        raise InvalidInputError("Fee Head name is required.")
    try:
        fh = FeeHead(school_id=school_id, name=name, is_one_time=payload.is_one_time)
        db.add(fh)
        await db.commit()
        await db.refresh(fh)
    except IntegrityError:
        await db.rollback()
        raise ConflictError("A fee head with this name already exists.")
    return _fh_to_response(fh)


async def list_fee_heads(db: AsyncSession, school_id: UUID) -> List[FeeHeadResponse]:
    result = await db.execute(
        select(FeeHead).where(FeeHead.school_id == school_id).order_by(FeeHead.created_at, FeeHead.name)
    )
    return [_fh_to_response(fh) for fh in result.scalars().all()]


async def delete_fee_head(db: AsyncSession, school_id: UUID, fee_head_id: UUID) -> None:
    """Delete an unused fee head. Heads referenced by a structure or a payment item are kept for history."""
    fh = await get_fee_head_or_404(db, school_id, fee_head_id)
    in_structures = (
        await db.execute(select(FeeStructure.id).where(FeeStructure.fee_head_id == fh.id).limit(1))
    ).scalar_one_or_none()
    in_payments = (
        await db.execute(select(FeePaymentItem.id).where(FeePaymentItem.fee_head_id == fh.id).limit(1))
    ).scalar_one_or_none()
    if in_structures or in_payments:
        raise ConflictError("Cannot delete fee head: it is used by fee structures or payments.")
    await db.delete(fh)
    await db.commit()


# --- Fee Structure ---
async def set_fee_structure(
    db: AsyncSession,
    school_id: UUID,
    payload: FeeStructureSet,
    changed_by: Optional[UUID] = None,
) -> FeeStructureResponse:
    """Upsert the amount for (class, fee head, month). Repeating a call is a no-op; a new amount overwrites."""
    validate_month_year(payload.month_year)
    amount = _to_money(payload.amount, "Amount")
    if amount < 0:
        raise InvalidInputError("Amount must be a non-negative number.")
    await get_class_or_404(db, school_id, payload.class_id)
    fh = await get_fee_head_or_404(db, school_id, payload.fee_head_id)

    key = {
        "school_id": school_id,
        "class_id": payload.class_id,
        "fee_head_id": payload.fee_head_id,
        "month_year": payload.month_year,
    }
    try:
        outcome = await upsert_one(db, FeeStructure, key, {"amount": amount})
        fs = outcome.row
        await _log_fee_audit(
            db, school_id, "fee_structures", fs.id,
            "CREATE" if outcome.created else "UPDATE",
            None if outcome.created else {"amount": str(outcome.previous["amount"])},
            {"amount": str(amount), "class_id": str(payload.class_id), "fee_head_id": str(payload.fee_head_id), "month_year": payload.month_year},
            changed_by,
        )
        await db.commit()
        await db.refresh(fs)
    except IntegrityError:
        await db.rollback()
        logger.warning("Fee structure upsert lost a race for %s", key)
        raise ConflictError("This fee head already has an amount set for this class/month.")

    return FeeStructureResponse(
        id=fs.id,
        school_id=fs.school_id,
        class_id=fs.class_id,
        fee_head_id=fs.fee_head_id,
        fee_head_name=fh.name,
        is_one_time=fh.is_one_time,
        month_year=fs.month_year,
        amount=_to_decimal(fs.amount),
        created_at=fs.created_at,
        updated_at=fs.updated_at,
    )


async def list_structures(
    db: AsyncSession,
    school_id: UUID,
    class_id: UUID,
    month_year: str,
) -> List[FeeStructureResponse]:
    validate_month_year(month_year)
    return await fetch_structures(db, school_id, class_id, month_year)


# --- Payment ---
def _validate_items(items: Sequence[FeePaymentItemIn], total_amount_paid: Decimal) -> None:
    if not items:
        raise InvalidInputError("Missing required payment fields.")
    _to_money(total_amount_paid, "Total amount paid")
    for i in items:
        _to_money(i.amount_paid, "Payment item amount")
    if any(_to_decimal(i.amount_paid) <= 0 for i in items):
        raise InvalidInputError("Every payment item must have a positive amount.")
    if total_amount_paid < 1:
        raise InvalidInputError("Total amount paid must be at least 1.")
    if sum((_to_decimal(i.amount_paid) for i in items), Decimal("0")) != total_amount_paid:
        raise InvalidInputError("Total amount paid does not match the sum of payment items.")


async def _fee_head_names(db: AsyncSession, school_id: UUID, fee_head_ids: Sequence[UUID]) -> Dict[UUID, str]:
    result = await db.execute(
        select(FeeHead.id, FeeHead.name).where(FeeHead.school_id == school_id, FeeHead.id.in_(set(fee_head_ids)))
    )
    return {row[0]: row[1] for row in result.all()}


async def _insert_payment(
    db: AsyncSession,
    school_id: UUID,
    student: Student,
    month_year: str,
    items: Sequence[AllocationItem],
    total_amount_paid: Decimal,
    payment_date: Optional[datetime],
    remarks: Optional[str],
    received_by: Optional[UUID],
) -> FeePayment:
    payment = FeePayment(
        school_id=school_id,
        student_id=student.id,
        class_id=student.class_id,
        month_year=month_year,
        payment_date=payment_date or datetime.now(timezone.utc),
        received_by=received_by,
        total_amount_paid=total_amount_paid,
        remarks=(remarks or "").strip() or None,
    )
    payment.items = [
        FeePaymentItem(fee_head_id=item.fee_head_id, position=position, amount_paid=_to_decimal(item.amount_paid))
        for position, item in enumerate(items)
    ]
    db.add(payment)
    await db.flush()
    await _log_fee_audit(
        db, school_id, "fee_payments", payment.id,
        "CREATE",
        None,
        {
            "student_id": str(student.id),
            "month_year": month_year,
            "total_amount_paid": str(total_amount_paid),
            "items": [{"fee_head_id": str(i.fee_head_id), "amount_paid": str(i.amount_paid)} for i in items],
        },
        received_by,
    )
    return payment


async def _payment_to_response(
    db: AsyncSession,
    payment: FeePayment,
    items: Sequence[AllocationItem],
    head_names: Dict[UUID, str],
) -> FeePaymentResponse:
    # items come from the caller: refresh() leaves the relationship unloaded
    receiver_name = None
    if payment.received_by is not None:
        receiver = await db.get(User, payment.received_by)
        receiver_name = receiver.full_name if receiver else None
    return FeePaymentResponse(
        id=payment.id,
        school_id=payment.school_id,
        student_id=payment.student_id,
        class_id=payment.class_id,
        month_year=payment.month_year,
        payment_date=payment.payment_date,
        received_by=payment.received_by,
        received_by_name=receiver_name,
        items=[
            FeePaymentItemResponse(
                fee_head_id=item.fee_head_id,
                fee_head_name=head_names.get(item.fee_head_id),
                amount_paid=_to_decimal(item.amount_paid),
            )
            for item in items
        ],
        total_amount_paid=_to_decimal(payment.total_amount_paid),
        remarks=payment.remarks,
        created_at=payment.created_at,
    )


async def record_payment(
    db: AsyncSession,
    school_id: UUID,
    payload: FeePaymentCreate,
    received_by: Optional[UUID] = None,
) -> FeePaymentResponse:
    """
    Record an itemized payment as given. Items may exceed a head's balance; the ledger then
    shows a negative balance for that head.
    """
    validate_month_year(payload.month_year)
    total = _to_decimal(payload.total_amount_paid)
    _validate_items(payload.items, total)
    student = await get_student_or_404(db, school_id, payload.student_id)

    head_ids = [i.fee_head_id for i in payload.items]
    head_names = await _fee_head_names(db, school_id, head_ids)
    missing = [str(h) for h in head_ids if h not in head_names]
    if missing:
        raise NotFoundError(f"Fee head not found: {', '.join(missing)}")

    items = [AllocationItem(fee_head_id=i.fee_head_id, amount_paid=i.amount_paid) for i in payload.items]
    payment = await _insert_payment(
        db, school_id, student, payload.month_year, items, total,
        payload.payment_date, payload.remarks, received_by,
    )
    await db.commit()
    await db.refresh(payment)
    logger.info(
        "Recorded payment %s for student %s month %s total %s",
        payment.id, student.id, payload.month_year, total,
    )
    return await _payment_to_response(db, payment, items, head_names)


async def record_lump_payment(
    db: AsyncSession,
    school_id: UUID,
    payload: LumpPaymentCreate,
    received_by: Optional[UUID] = None,
) -> FeePaymentResponse:
    """
    Split a lump sum across the student's outstanding heads and record it.

    Balances are read with the student row locked and the payment is inserted in the same
    transaction, so two lump payments for one student cannot allocate against the same
    balance. Amounts above the outstanding total are rejected.
    """
    amount = _to_money(payload.amount, "Payment amount")
    if amount < 1:
        raise InvalidInputError("Payment amount must be at least 1.")

    ledger = await get_student_ledger(db, school_id, payload.student_id, payload.month_year, lock_student=True)
    allocation = allocate(amount, outstanding_dues(ledger))
    if allocation.remainder > 0:
        outstanding = amount - allocation.remainder
        await db.rollback()
        logger.info(
            "Rejected lump payment of %s for student %s month %s: outstanding %s",
            amount, payload.student_id, payload.month_year, outstanding,
        )
        raise InvalidInputError(
            f"Payment cannot exceed balance. Outstanding balance is {outstanding}."
        )

    student = await get_student_or_404(db, school_id, payload.student_id)
    payment = await _insert_payment(
        db, school_id, student, payload.month_year, allocation.items, amount,
        payload.payment_date, payload.remarks, received_by,
    )
    await db.commit()
    await db.refresh(payment)
    logger.info(
        "Recorded lump payment %s for student %s month %s total %s across %d heads",
        payment.id, student.id, payload.month_year, amount, len(allocation.items),
    )
    head_names = {d.fee_head_id: d.name for d in ledger.dues}
    return await _payment_to_response(db, payment, allocation.items, head_names)


async def preview_allocation(
    db: AsyncSession,
    school_id: UUID,
    payload: AllocationPreviewRequest,
) -> AllocationPreviewResponse:
    """How a lump sum would be split against the live ledger. Nothing is written."""
    amount = _to_money(payload.amount, "Amount")
    if amount <= 0:
        raise InvalidInputError("Amount must be positive.")
    ledger = await get_student_ledger(db, school_id, payload.student_id, payload.month_year)
    allocation = allocate(amount, outstanding_dues(ledger))
    names = {d.fee_head_id: d.name for d in ledger.dues}
    outstanding = sum((d.balance for d in ledger.dues if d.balance > 0), Decimal("0"))
    return AllocationPreviewResponse(
        items=[
            AllocationPreviewItem(
                fee_head_id=item.fee_head_id,
                amount_paid=item.amount_paid,
                fee_head_name=names.get(item.fee_head_id),
            )
            for item in allocation.items
        ],
        remainder=allocation.remainder,
        outstanding_balance=outstanding,
    )


async def list_payments(
    db: AsyncSession,
    school_id: UUID,
    student_id: UUID,
    month_year: str,
) -> List[FeePaymentResponse]:
    validate_month_year(month_year)
    await get_student_or_404(db, school_id, student_id)
    return await load_payments(db, school_id, student_id, month_year)
