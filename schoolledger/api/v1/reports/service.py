"""
Reports: per-student ledger, cross-student fee summary and the operations
summary for a date range. Read-only; nothing here writes.
"""

from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.api.v1.fees.ledger import get_student_ledger
from schoolledger.api.v1.fees.schemas import StudentLedgerResponse
from schoolledger.core.enums import FeeStatus
from schoolledger.core.exceptions import InvalidInputError
from schoolledger.core.models import FeePayment, FeeStructure, SchoolClass, Student, StudentAttendance
from schoolledger.core.schemas import validate_month_year

from .schemas import (
    AttendanceCounts,
    DateRange,
    FeeSummaryRow,
    FinancialSummary,
    OperationsSummaryResponse,
)

MISSING_CLASS_NAME = "N/A"


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def fee_status(amount_due: Decimal, amount_paid: Decimal) -> FeeStatus:
    balance = amount_due - amount_paid
    if amount_due <= 0:
        return FeeStatus.not_applicable
    if balance <= 0:
        return FeeStatus.paid
    if amount_paid > 0:
        return FeeStatus.partial
    return FeeStatus.unpaid


async def get_student_ledger_report(
    db: AsyncSession,
    school_id: UUID,
    student_id: UUID,
    month_year: str,
) -> StudentLedgerResponse:
    return await get_student_ledger(db, school_id, student_id, month_year)


async def get_fee_summary(
    db: AsyncSession,
    school_id: UUID,
    month_year: str,
    class_id: Optional[UUID] = None,
) -> List[FeeSummaryRow]:
    """
    Every student of the school (or of one class) with the month's due, paid and balance.
    Sorted by class name, then student name; students whose class is gone show "N/A".
    """
    validate_month_year(month_year)

    student_stmt = (
        select(Student, SchoolClass.name, SchoolClass.section)
        .outerjoin(SchoolClass, Student.class_id == SchoolClass.id)
        .where(Student.school_id == school_id)
    )
    if class_id is not None:
        student_stmt = student_stmt.where(Student.class_id == class_id)
    students = (await db.execute(student_stmt)).all()

    due_rows = await db.execute(
        select(FeeStructure.class_id, func.sum(FeeStructure.amount))
        .where(FeeStructure.school_id == school_id, FeeStructure.month_year == month_year)
        .group_by(FeeStructure.class_id)
    )
    due_by_class: Dict[UUID, Decimal] = {cid: _to_decimal(total) for cid, total in due_rows.all()}

    paid_rows = await db.execute(
        select(FeePayment.student_id, func.sum(FeePayment.total_amount_paid))
        .where(FeePayment.school_id == school_id, FeePayment.month_year == month_year)
        .group_by(FeePayment.student_id)
    )
    paid_by_student: Dict[UUID, Decimal] = {sid: _to_decimal(total) for sid, total in paid_rows.all()}

    rows = []
    for student, class_name, class_section in students:
        amount_due = due_by_class.get(student.class_id, Decimal("0"))
        amount_paid = paid_by_student.get(student.id, Decimal("0"))
        rows.append(
            FeeSummaryRow(
                student_id=student.id,
                full_name=student.full_name,
                roll_number=student.roll_number,
                class_id=student.class_id,
                class_name=class_name or MISSING_CLASS_NAME,
                class_section=class_section,
                amount_due=amount_due,
                amount_paid=amount_paid,
                balance=amount_due - amount_paid,
                status=fee_status(amount_due, amount_paid),
            )
        )
    rows.sort(key=lambda r: (r.class_name, r.full_name))
    return rows


async def get_operations_summary(
    db: AsyncSession,
    school_id: UUID,
    start_date: date,
    end_date: date,
    class_id: Optional[UUID] = None,
) -> OperationsSummaryResponse:
    """Student count, attendance by status and fees collected between two days, inclusive."""
    if start_date > end_date:
        raise InvalidInputError("startDate must not be after endDate.")

    student_filter = [Student.school_id == school_id]
    if class_id is not None:
        student_filter.append(Student.class_id == class_id)
    student_count = (await db.execute(select(func.count(Student.id)).where(*student_filter))).scalar_one()

    attendance_stmt = (
        select(StudentAttendance.status, func.count(StudentAttendance.id))
        .where(
            StudentAttendance.school_id == school_id,
            StudentAttendance.date >= start_date,
            StudentAttendance.date <= end_date,
        )
        .group_by(StudentAttendance.status)
    )
    if class_id is not None:
        attendance_stmt = attendance_stmt.where(
            StudentAttendance.student_id.in_(select(Student.id).where(*student_filter))
        )
    attendance = AttendanceCounts()
    for status_value, count in (await db.execute(attendance_stmt)).all():
        key = (status_value or "").lower()
        if key in ("present", "absent", "late", "leave"):
            setattr(attendance, key, count)
            attendance.total_records += count

    period_start = datetime.combine(start_date, time.min, tzinfo=timezone.utc)
    period_end = datetime.combine(end_date, time.max, tzinfo=timezone.utc)
    payment_stmt = select(func.sum(FeePayment.total_amount_paid)).where(
        FeePayment.school_id == school_id,
        FeePayment.payment_date >= period_start,
        FeePayment.payment_date <= period_end,
    )
    if class_id is not None:
        payment_stmt = payment_stmt.where(FeePayment.class_id == class_id)
    collected = (await db.execute(payment_stmt)).scalar_one()

    return OperationsSummaryResponse(
        date_range=DateRange(start_date=start_date, end_date=end_date),
        attendance=attendance,
        financial=FinancialSummary(total_collected_in_period=_to_decimal(collected)),
        student_count=student_count,
    )
