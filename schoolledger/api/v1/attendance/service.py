"""Attendance service: idempotent bulk marking and day view per class."""

import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from schoolledger.auth.models import User
from schoolledger.core.bulk_upsert import BulkUpsertResult, bulk_upsert
from schoolledger.core.exceptions import ConflictError, InvalidInputError
from schoolledger.core.models import Student, StudentAttendance
from schoolledger.core.schemas import truncate_to_utc_day
from schoolledger.core.tenant_service import get_class_or_404, get_students_or_404

from .schemas import AttendanceDayResponse, AttendanceRecord, AttendanceRecordIn

logger = logging.getLogger(__name__)


async def record_attendance_bulk(
    db: AsyncSession,
    school_id: UUID,
    marked_by: Optional[UUID],
    records: List[AttendanceRecordIn],
) -> BulkUpsertResult:
    """
    Upsert one row per (student, UTC day). Re-sending a batch changes nothing; a new status
    for the same day overwrites the old one. The batch is validated as a whole before any
    row is written and commits as one transaction.
    """
    if not records:
        raise InvalidInputError("Attendance data must be a non-empty array.")
    await get_students_or_404(db, school_id, (r.student_id for r in records))

    def natural_key(r: AttendanceRecordIn) -> dict:
        return {"school_id": school_id, "student_id": r.student_id, "date": truncate_to_utc_day(r.date)}

    def apply(existing: Optional[StudentAttendance], r: AttendanceRecordIn) -> dict:
        return {"status": r.status.value, "marked_by": marked_by}

    try:
        result = await bulk_upsert(db, StudentAttendance, records, natural_key, apply)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning("Concurrent attendance write for school %s, batch rolled back", school_id)
        raise ConflictError("Attendance was recorded concurrently; retry the request.")

    logger.info(
        "Recorded attendance for school %s: matched=%d upserted=%d",
        school_id, result.matched, result.upserted,
    )
    return result


async def get_attendance(
    db: AsyncSession,
    school_id: UUID,
    att_date: date,
    class_id: UUID,
) -> AttendanceDayResponse:
    """Attendance of one class on one day, with student and marker names."""
    await get_class_or_404(db, school_id, class_id)
    day = truncate_to_utc_day(att_date)
    marker = aliased(User)
    stmt = (
        select(StudentAttendance, Student.full_name, Student.roll_number, marker.full_name)
        .join(Student, StudentAttendance.student_id == Student.id)
        .outerjoin(marker, StudentAttendance.marked_by == marker.id)
        .where(
            StudentAttendance.school_id == school_id,
            StudentAttendance.date == day,
            Student.class_id == class_id,
        )
        .order_by(Student.roll_number, Student.full_name)
    )
    result = await db.execute(stmt)
    records = [
        AttendanceRecord(
            id=sa.id,
            student_id=sa.student_id,
            student_name=student_name,
            roll_number=roll_number,
            date=sa.date,
            status=sa.status,
            marked_by=sa.marked_by,
            marked_by_name=marked_by_name,
            updated_at=sa.updated_at,
        )
        for sa, student_name, roll_number, marked_by_name in result.all()
    ]
    return AttendanceDayResponse(date=day, class_id=class_id, records=records)
