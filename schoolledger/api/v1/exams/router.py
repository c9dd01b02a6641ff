from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.auth.dependencies import get_current_user
from schoolledger.auth.rbac import ACADEMIC_STAFF, require_roles
from schoolledger.auth.schemas import CurrentUser
from schoolledger.core.exceptions import ServiceError
from schoolledger.db.session import get_db

from .schemas import ExamCreate, ExamResponse
from . import service

router = APIRouter(prefix="/api/v1/exams", tags=["exams"])


@router.get("", response_model=List[ExamResponse])
async def list_exams(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[ExamResponse]:
    return await service.list_exams(db, current_user.school_id)


@router.post(
    "",
    response_model=ExamResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_exam(
    payload: ExamCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*ACADEMIC_STAFF)),
) -> ExamResponse:
    try:
        return await service.create_exam(db, current_user.school_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{exam_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_exam(
    exam_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*ACADEMIC_STAFF)),
) -> Response:
    try:
        await service.delete_exam(db, current_user.school_id, exam_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
