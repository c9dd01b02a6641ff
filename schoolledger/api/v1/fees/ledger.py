"""
Ledger reconciliation: joins the fee catalog (what is due) with recorded
payments (what was paid) for one student and month.

dues[head]    = FeeStructure.amount for the student's class and month
paid[head]    = sum of payment item amounts for that head
balance[head] = dues[head] - paid[head]   (negative when overpaid)

summary.total_paid is the sum of FeePayment.total_amount_paid, which equals the
per-item sum because payments are validated on write.
"""

from collections import OrderedDict
from decimal import Decimal
from typing import Dict, List, Sequence, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.auth.models import User
from schoolledger.core.models import FeeHead, FeePayment, FeePaymentItem, FeeStructure, Student
from schoolledger.core.schemas import validate_month_year
from schoolledger.core.tenant_service import get_student_or_404

from .allocation import OutstandingDue
from .schemas import (
    FeePaymentItemResponse,
    FeePaymentResponse,
    FeeStructureResponse,
    LedgerDue,
    LedgerSummary,
    StudentLedgerResponse,
)


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


async def fetch_structures(
    db: AsyncSession,
    school_id: UUID,
    class_id: UUID,
    month_year: str,
) -> List[FeeStructureResponse]:
    """Fee structures of a class and month in catalog order (order of definition)."""
    stmt = (
        select(FeeStructure, FeeHead.name, FeeHead.is_one_time)
        .join(FeeHead, FeeStructure.fee_head_id == FeeHead.id)
        .where(
            FeeStructure.school_id == school_id,
            FeeStructure.class_id == class_id,
            FeeStructure.month_year == month_year,
            FeeHead.school_id == school_id,
        )
        .order_by(FeeStructure.created_at, FeeHead.created_at, FeeHead.name)
    )
    result = await db.execute(stmt)
    return [
        FeeStructureResponse(
            id=fs.id,
            school_id=fs.school_id,
            class_id=fs.class_id,
            fee_head_id=fs.fee_head_id,
            fee_head_name=head_name,
            is_one_time=is_one_time,
            month_year=fs.month_year,
            amount=_to_decimal(fs.amount),
            created_at=fs.created_at,
            updated_at=fs.updated_at,
        )
        for fs, head_name, is_one_time in result.all()
    ]


async def load_payments(
    db: AsyncSession,
    school_id: UUID,
    student_id: UUID,
    month_year: str,
) -> List[FeePaymentResponse]:
    """Payments of a student for a month, newest first, with fee head and receiver names joined."""
    payment_rows = (
        await db.execute(
            select(FeePayment, User.full_name)
            .outerjoin(User, FeePayment.received_by == User.id)
            .where(
                FeePayment.school_id == school_id,
                FeePayment.student_id == student_id,
                FeePayment.month_year == month_year,
            )
            .order_by(FeePayment.payment_date.desc(), FeePayment.created_at.desc())
        )
    ).all()
    if not payment_rows:
        return []

    payment_ids = [p.id for p, _ in payment_rows]
    item_rows = (
        await db.execute(
            select(FeePaymentItem, FeeHead.name)
            .outerjoin(FeeHead, FeePaymentItem.fee_head_id == FeeHead.id)
            .where(FeePaymentItem.payment_id.in_(payment_ids))
            .order_by(FeePaymentItem.payment_id, FeePaymentItem.position)
        )
    ).all()
    items_by_payment: Dict[UUID, List[FeePaymentItemResponse]] = {pid: [] for pid in payment_ids}
    for item, head_name in item_rows:
        items_by_payment[item.payment_id].append(
            FeePaymentItemResponse(
                fee_head_id=item.fee_head_id,
                fee_head_name=head_name,
                amount_paid=_to_decimal(item.amount_paid),
            )
        )

    return [
        FeePaymentResponse(
            id=p.id,
            school_id=p.school_id,
            student_id=p.student_id,
            class_id=p.class_id,
            month_year=p.month_year,
            payment_date=p.payment_date,
            received_by=p.received_by,
            received_by_name=receiver_name,
            items=items_by_payment[p.id],
            total_amount_paid=_to_decimal(p.total_amount_paid),
            remarks=p.remarks,
            created_at=p.created_at,
        )
        for p, receiver_name in payment_rows
    ]


def reconcile(
    student: Student,
    month_year: str,
    structures: Sequence[FeeStructureResponse],
    payments: Sequence[FeePaymentResponse],
) -> StudentLedgerResponse:
    due_map: "OrderedDict[UUID, Tuple[str, Decimal]]" = OrderedDict()
    for fs in structures:
        due_map[fs.fee_head_id] = (fs.fee_head_name or "", fs.amount)

    total_paid = Decimal("0")
    paid_map: Dict[UUID, Decimal] = {}
    for payment in payments:
        total_paid += payment.total_amount_paid
        for item in payment.items:
            paid_map[item.fee_head_id] = paid_map.get(item.fee_head_id, Decimal("0")) + item.amount_paid

    dues = []
    for head_id, (name, due) in due_map.items():
        paid = paid_map.get(head_id, Decimal("0"))
        dues.append(LedgerDue(fee_head_id=head_id, name=name, due=due, paid=paid, balance=due - paid))

    total_due = sum((due for _, due in due_map.values()), Decimal("0"))
    return StudentLedgerResponse(
        student_id=student.id,
        class_id=student.class_id,
        month_year=month_year,
        dues=dues,
        payments=list(payments),
        summary=LedgerSummary(total_due=total_due, total_paid=total_paid, balance=total_due - total_paid),
    )


async def get_student_ledger(
    db: AsyncSession,
    school_id: UUID,
    student_id: UUID,
    month_year: str,
    lock_student: bool = False,
) -> StudentLedgerResponse:
    """
    Due/paid/balance per fee head and in aggregate. A month with no structures and no
    payments yields an all-zero ledger. lock_student holds the student row for the rest of
    the caller's transaction so concurrent lump payments read balances one at a time.
    """
    validate_month_year(month_year)
    student = await get_student_or_404(db, school_id, student_id, for_update=lock_student)
    structures = await fetch_structures(db, school_id, student.class_id, month_year)
    payments = await load_payments(db, school_id, student_id, month_year)
    return reconcile(student, month_year, structures, payments)


def outstanding_dues(ledger: StudentLedgerResponse) -> List[OutstandingDue]:
    """Allocation input: every head of the ledger with its current balance, in catalog order."""
    return [OutstandingDue(fee_head_id=d.fee_head_id, balance=d.balance) for d in ledger.dues]
