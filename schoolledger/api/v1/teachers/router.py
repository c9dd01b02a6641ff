from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.auth.dependencies import get_current_user
from schoolledger.auth.rbac import require_roles
from schoolledger.auth.schemas import CurrentUser
from schoolledger.core.enums import UserRole
from schoolledger.core.exceptions import ServiceError
from schoolledger.db.session import get_db

from .schemas import TeacherCreate, TeacherResponse
from . import service

router = APIRouter(prefix="/api/v1/teachers", tags=["teachers"])


@router.post(
    "",
    response_model=TeacherResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_teacher(
    payload: TeacherCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(UserRole.ADMIN)),
) -> TeacherResponse:
    try:
        return await service.create_teacher(db, current_user.school_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[TeacherResponse])
async def list_teachers(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[TeacherResponse]:
    return await service.list_teachers(db, current_user.school_id)
