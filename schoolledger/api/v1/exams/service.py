import logging
from typing import List
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.core.exceptions import ConflictError, InvalidInputError
from schoolledger.core.models import Exam, Grade
from schoolledger.core.tenant_service import get_exam_or_404

from .schemas import ExamCreate, ExamResponse

logger = logging.getLogger(__name__)


async def create_exam(db: AsyncSession, school_id: UUID, payload: ExamCreate) -> ExamResponse:
    name = payload.name.strip()
    academic_year = payload.academic_year.strip()
    if not name or not academic_year:
        raise InvalidInputError("Name and Academic Year are required.")
    try:
        exam = Exam(school_id=school_id, name=name, academic_year=academic_year)
        db.add(exam)
        await db.commit()
        await db.refresh(exam)
    except IntegrityError:
        await db.rollback()
        raise ConflictError("An exam with this name already exists for this academic year.")
    return ExamResponse.model_validate(exam)


async def list_exams(db: AsyncSession, school_id: UUID) -> List[ExamResponse]:
    """Newest academic year first, then by name."""
    result = await db.execute(
        select(Exam).where(Exam.school_id == school_id).order_by(Exam.academic_year.desc(), Exam.name)
    )
    return [ExamResponse.model_validate(e) for e in result.scalars().all()]


async def delete_exam(db: AsyncSession, school_id: UUID, exam_id: UUID) -> None:
    exam = await get_exam_or_404(db, school_id, exam_id)
    grade_count = (
        await db.execute(
            select(func.count(Grade.id)).where(Grade.school_id == school_id, Grade.exam_id == exam.id)
        )
    ).scalar_one()
    if grade_count:
        raise ConflictError(f"Cannot delete exam: {grade_count} grade(s) are already associated with it.")
    await db.delete(exam)
    await db.commit()
    logger.info("Deleted exam %s of school %s", exam_id, school_id)
