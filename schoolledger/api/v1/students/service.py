from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.core.exceptions import ConflictError, InvalidInputError
from schoolledger.core.models import SchoolClass, Student
from schoolledger.core.tenant_service import get_class_or_404, get_student_or_404

from .schemas import StudentCreate, StudentResponse


def _student_to_response(s: Student, class_name: Optional[str]) -> StudentResponse:
    return StudentResponse(
        id=s.id,
        school_id=s.school_id,
        class_id=s.class_id,
        class_name=class_name,
        full_name=s.full_name,
        roll_number=s.roll_number,
        parent_contact=s.parent_contact,
        created_at=s.created_at,
    )


async def create_student(
    db: AsyncSession,
    school_id: UUID,
    payload: StudentCreate,
) -> StudentResponse:
    full_name = payload.full_name.strip()
    if not full_name:
        raise InvalidInputError("Student name is required.")
    school_class = await get_class_or_404(db, school_id, payload.class_id)
    try:
        student = Student(
            school_id=school_id,
            class_id=school_class.id,
            full_name=full_name,
            roll_number=(payload.roll_number or "").strip() or None,
            parent_contact=payload.parent_contact,
        )
        db.add(student)
        await db.commit()
        await db.refresh(student)
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Roll number already exists in this class.")
    return _student_to_response(student, school_class.name)


async def list_students(
    db: AsyncSession,
    school_id: UUID,
    class_id: Optional[UUID] = None,
) -> List[StudentResponse]:
    stmt = (
        select(Student, SchoolClass.name)
        .outerjoin(SchoolClass, Student.class_id == SchoolClass.id)
        .where(Student.school_id == school_id)
    )
    if class_id is not None:
        stmt = stmt.where(Student.class_id == class_id)
    stmt = stmt.order_by(Student.full_name, Student.roll_number)
    result = await db.execute(stmt)
    return [_student_to_response(s, class_name) for s, class_name in result.all()]


async def get_student(db: AsyncSession, school_id: UUID, student_id: UUID) -> StudentResponse:
    student = await get_student_or_404(db, school_id, student_id)
    school_class = await db.get(SchoolClass, student.class_id)
    return _student_to_response(student, school_class.name if school_class else None)
