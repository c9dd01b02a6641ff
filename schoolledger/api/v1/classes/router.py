from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.auth.dependencies import get_current_user
from schoolledger.auth.rbac import require_roles
from schoolledger.auth.schemas import CurrentUser
from schoolledger.core.enums import UserRole
from schoolledger.core.exceptions import ServiceError
from schoolledger.db.session import get_db

from .schemas import ClassCreate, ClassResponse
from . import service

router = APIRouter(prefix="/api/v1/classes", tags=["classes"])


@router.post(
    "",
    response_model=ClassResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_class(
    payload: ClassCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(UserRole.ADMIN)),
) -> ClassResponse:
    try:
        return await service.create_class(db, current_user.school_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[ClassResponse])
async def list_classes(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[ClassResponse]:
    return await service.list_classes(db, current_user.school_id)
