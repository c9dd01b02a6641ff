"""Grades service: idempotent bulk save, listing and report card."""

import logging
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.api.v1.exams.schemas import ExamResponse
from schoolledger.core.bulk_upsert import BulkUpsertResult, bulk_upsert
from schoolledger.core.exceptions import ConflictError, InvalidInputError, NotFoundError
from schoolledger.core.models import Exam, Grade, SchoolClass, Student
from schoolledger.core.tenant_service import get_exam_or_404, get_student_or_404, get_students_or_404

from .schemas import GradeIn, GradeResponse, ReportCardResponse, ReportCardStudent

logger = logging.getLogger(__name__)

# Numeric(6, 2)
MAX_MARKS = Decimal("9999.99")
CENT = Decimal("0.01")


def _marks_fit_column(value: Decimal) -> bool:
    return value.is_finite() and 0 <= value <= MAX_MARKS and value == value.quantize(CENT)


def _grade_to_response(g: Grade, student_name: Optional[str] = None, roll_number: Optional[str] = None) -> GradeResponse:
    return GradeResponse(
        id=g.id,
        student_id=g.student_id,
        student_name=student_name,
        roll_number=roll_number,
        class_id=g.class_id,
        exam_id=g.exam_id,
        subject=g.subject,
        obtained_marks=g.obtained_marks,
        total_marks=g.total_marks,
        remarks=g.remarks,
        updated_at=g.updated_at,
    )


async def _validate_batch(db: AsyncSession, school_id: UUID, grades: List[GradeIn]) -> None:
    for g in grades:
        if not g.subject.strip():
            raise InvalidInputError("Each grade entry must have studentId, classId, examId, subject, and obtainedMarks.")
        if not (_marks_fit_column(g.obtained_marks) and _marks_fit_column(g.total_marks)):
            raise InvalidInputError(f"Marks for subject {g.subject} must be between 0 and {MAX_MARKS} with at most two decimals.")
        if g.obtained_marks > g.total_marks:
            raise InvalidInputError(f"Obtained marks exceed total marks for subject {g.subject}.")
    await get_students_or_404(db, school_id, (g.student_id for g in grades))

    exam_ids = {g.exam_id for g in grades}
    found_exams = set(
        (await db.execute(select(Exam.id).where(Exam.school_id == school_id, Exam.id.in_(exam_ids)))).scalars().all()
    )
    if exam_ids - found_exams:
        raise NotFoundError("Exam not found.")

    class_ids = {g.class_id for g in grades}
    found_classes = set(
        (
            await db.execute(
                select(SchoolClass.id).where(SchoolClass.school_id == school_id, SchoolClass.id.in_(class_ids))
            )
        ).scalars().all()
    )
    if class_ids - found_classes:
        raise NotFoundError("Class not found.")


async def save_grades_bulk(db: AsyncSession, school_id: UUID, grades: List[GradeIn]) -> BulkUpsertResult:
    """Upsert by (student, exam, subject). All entries are checked before any is written."""
    if not grades:
        raise InvalidInputError("A non-empty array of grades is required.")
    await _validate_batch(db, school_id, grades)

    def natural_key(g: GradeIn) -> dict:
        return {"school_id": school_id, "student_id": g.student_id, "exam_id": g.exam_id, "subject": g.subject.strip()}

    def apply(existing: Optional[Grade], g: GradeIn) -> dict:
        return {
            "class_id": g.class_id,
            "total_marks": g.total_marks,
            "obtained_marks": g.obtained_marks,
            "remarks": g.remarks or "",
        }

    try:
        result = await bulk_upsert(db, Grade, grades, natural_key, apply)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning("Concurrent grade write for school %s, batch rolled back", school_id)
        raise ConflictError("Grades were saved concurrently; retry the request.")

    logger.info("Saved grades for school %s: matched=%d upserted=%d", school_id, result.matched, result.upserted)
    return result


async def list_grades(
    db: AsyncSession,
    school_id: UUID,
    exam_id: UUID,
    class_id: UUID,
    subject: str,
) -> List[GradeResponse]:
    stmt = (
        select(Grade, Student.full_name, Student.roll_number)
        .join(Student, Grade.student_id == Student.id)
        .where(
            Grade.school_id == school_id,
            Grade.exam_id == exam_id,
            Grade.class_id == class_id,
            Grade.subject == subject,
        )
        .order_by(Student.roll_number, Student.full_name)
    )
    result = await db.execute(stmt)
    return [_grade_to_response(g, name, roll) for g, name, roll in result.all()]


async def get_report_card(
    db: AsyncSession,
    school_id: UUID,
    student_id: UUID,
    exam_id: UUID,
) -> ReportCardResponse:
    """All grades of a student in an exam, by subject, with class and exam headers."""
    student = await get_student_or_404(db, school_id, student_id)
    exam = await get_exam_or_404(db, school_id, exam_id)
    school_class = await db.get(SchoolClass, student.class_id)

    result = await db.execute(
        select(Grade)
        .where(Grade.school_id == school_id, Grade.student_id == student_id, Grade.exam_id == exam_id)
        .order_by(Grade.subject)
    )
    grades = [_grade_to_response(g, student.full_name, student.roll_number) for g in result.scalars().all()]
    return ReportCardResponse(
        student=ReportCardStudent(
            id=student.id,
            full_name=student.full_name,
            roll_number=student.roll_number,
            class_id=student.class_id,
            class_name=school_class.name if school_class else None,
            section=school_class.section if school_class else None,
        ),
        exam=ExamResponse.model_validate(exam),
        grades=grades,
        total_obtained=sum((g.obtained_marks for g in grades), Decimal("0")),
        total_marks=sum((g.total_marks for g in grades), Decimal("0")),
    )
