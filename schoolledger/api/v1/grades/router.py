from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.auth.dependencies import get_current_user
from schoolledger.auth.rbac import ACADEMIC_STAFF, require_roles
from schoolledger.auth.schemas import CurrentUser
from schoolledger.core.exceptions import ServiceError
from schoolledger.db.session import get_db

from .schemas import GradeBulkResult, GradeIn, GradeResponse
from . import service

router = APIRouter(prefix="/api/v1/grades", tags=["grades"])


@router.post("/bulk", response_model=GradeBulkResult)
async def save_grades(
    payload: List[GradeIn],
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*ACADEMIC_STAFF)),
) -> GradeBulkResult:
    try:
        result = await service.save_grades_bulk(db, current_user.school_id, payload)
        return GradeBulkResult(matched=result.matched, upserted=result.upserted)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[GradeResponse])
async def list_grades(
    exam_id: UUID,
    class_id: UUID,
    subject: str,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[GradeResponse]:
    return await service.list_grades(db, current_user.school_id, exam_id, class_id, subject)
