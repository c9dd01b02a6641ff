from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.core.exceptions import ConflictError, InvalidInputError
from schoolledger.core.models import SchoolClass

from .schemas import ClassCreate, ClassResponse


async def create_class(
    db: AsyncSession,
    school_id: UUID,
    payload: ClassCreate,
) -> ClassResponse:
    name = payload.name.strip()
    if not name:
        raise InvalidInputError("Class name is required.")
    section = (payload.section or "").strip() or None
    try:
        obj = SchoolClass(school_id=school_id, name=name, section=section)
        db.add(obj)
        await db.commit()
        await db.refresh(obj)
        return ClassResponse.model_validate(obj)
    except IntegrityError:
        await db.rollback()
        raise ConflictError("A class with this name and section already exists.")


async def list_classes(db: AsyncSession, school_id: UUID) -> List[ClassResponse]:
    stmt = (
        select(SchoolClass)
        .where(SchoolClass.school_id == school_id)
        .order_by(SchoolClass.created_at, SchoolClass.name, SchoolClass.section)
    )
    result = await db.execute(stmt)
    return [ClassResponse.model_validate(c) for c in result.scalars().all()]
