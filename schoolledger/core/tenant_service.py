"""
Tenant-scoped lookups shared by the feature services.

Every record is fetched by (id, school_id); a record from another school is
reported exactly like a missing one.
"""
from typing import Dict, Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.core.exceptions import NotFoundError
from schoolledger.core.models import Exam, FeeHead, SchoolClass, Student


async def get_class_or_404(db: AsyncSession, school_id: UUID, class_id: UUID) -> SchoolClass:
    result = await db.execute(
        select(SchoolClass).where(SchoolClass.id == class_id, SchoolClass.school_id == school_id)
    )
    school_class = result.scalar_one_or_none()
    if school_class is None:
        raise NotFoundError("Class not found.")
    return school_class


async def get_student_or_404(
    db: AsyncSession,
    school_id: UUID,
    student_id: UUID,
    for_update: bool = False,
) -> Student:
    """
    Fetch a student of this school. With for_update=True the row is locked until the
    caller's transaction ends (no-op on SQLite).
    """
    stmt = select(Student).where(Student.id == student_id, Student.school_id == school_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    student = result.scalar_one_or_none()
    if student is None:
        raise NotFoundError("Student not found.")
    return student


async def get_fee_head_or_404(db: AsyncSession, school_id: UUID, fee_head_id: UUID) -> FeeHead:
    result = await db.execute(
        select(FeeHead).where(FeeHead.id == fee_head_id, FeeHead.school_id == school_id)
    )
    fee_head = result.scalar_one_or_none()
    if fee_head is None:
        raise NotFoundError("Fee head not found.")
    return fee_head


async def get_exam_or_404(db: AsyncSession, school_id: UUID, exam_id: UUID) -> Exam:
    result = await db.execute(select(Exam).where(Exam.id == exam_id, Exam.school_id == school_id))
    exam = result.scalar_one_or_none()
    if exam is None:
        raise NotFoundError("Exam not found.")
    return exam


async def get_students_or_404(db: AsyncSession, school_id: UUID, student_ids: Iterable[UUID]) -> Dict[UUID, Student]:
    """Fetch many students at once; any id outside the school fails the whole lookup."""
    wanted = set(student_ids)
    if not wanted:
        return {}
    result = await db.execute(
        select(Student).where(Student.school_id == school_id, Student.id.in_(wanted))
    )
    found = {s.id: s for s in result.scalars().all()}
    missing = wanted - set(found)
    if missing:
        raise NotFoundError(f"Student not found: {', '.join(sorted(str(m) for m in missing))}")
    return found
