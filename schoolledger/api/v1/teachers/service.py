from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.auth.models import User
from schoolledger.core.exceptions import ConflictError, NotFoundError
from schoolledger.core.models import Teacher

from .schemas import TeacherCreate, TeacherResponse


async def create_teacher(
    db: AsyncSession,
    school_id: UUID,
    payload: TeacherCreate,
) -> TeacherResponse:
    if payload.user_id is not None:
        result = await db.execute(
            select(User.id).where(User.id == payload.user_id, User.school_id == school_id)
        )
        if result.scalar_one_or_none() is None:
            raise NotFoundError("User not found.")
    try:
        teacher = Teacher(
            school_id=school_id,
            user_id=payload.user_id,
            full_name=payload.full_name.strip(),
            subject=payload.subject.strip(),
            contact_number=payload.contact_number,
        )
        db.add(teacher)
        await db.commit()
        await db.refresh(teacher)
    except IntegrityError:
        await db.rollback()
        raise ConflictError("This user is already linked to a teacher profile.")
    return TeacherResponse.model_validate(teacher)


async def list_teachers(db: AsyncSession, school_id: UUID) -> List[TeacherResponse]:
    result = await db.execute(
        select(Teacher).where(Teacher.school_id == school_id).order_by(Teacher.full_name)
    )
    return [TeacherResponse.model_validate(t) for t in result.scalars().all()]
