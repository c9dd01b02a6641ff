"""Fees router: fee heads, fee structures, payments, lump-sum allocation."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.auth.rbac import FEE_MANAGERS, require_roles
from schoolledger.auth.schemas import CurrentUser
from schoolledger.core.exceptions import ServiceError
from schoolledger.db.session import get_db

from .schemas import (
    AllocationPreviewRequest,
    AllocationPreviewResponse,
    FeeHeadCreate,
    FeeHeadResponse,
    FeePaymentCreate,
    FeePaymentResponse,
    FeeStructureResponse,
    FeeStructureSet,
    LumpPaymentCreate,
)
from . import service

router = APIRouter(prefix="/api/v1/fees", tags=["fees"])


# --- Fee Head ---
@router.post(
    "/heads",
    response_model=FeeHeadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_fee_head(
    payload: FeeHeadCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*FEE_MANAGERS)),
) -> FeeHeadResponse:
    try:
        return await service.create_fee_head(db, current_user.school_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/heads", response_model=List[FeeHeadResponse])
async def list_fee_heads(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*FEE_MANAGERS)),
) -> List[FeeHeadResponse]:
    return await service.list_fee_heads(db, current_user.school_id)


@router.delete("/heads/{fee_head_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_fee_head(
    fee_head_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*FEE_MANAGERS)),
) -> Response:
    try:
        await service.delete_fee_head(db, current_user.school_id, fee_head_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Fee Structure ---
@router.post("/structures", response_model=FeeStructureResponse)
async def set_fee_structure(
    payload: FeeStructureSet,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*FEE_MANAGERS)),
) -> FeeStructureResponse:
    try:
        return await service.set_fee_structure(db, current_user.school_id, payload, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/structures", response_model=List[FeeStructureResponse])
async def list_fee_structures(
    class_id: UUID,
    month_year: str = Query(..., description="YYYY-MM"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*FEE_MANAGERS)),
) -> List[FeeStructureResponse]:
    try:
        return await service.list_structures(db, current_user.school_id, class_id, month_year)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# --- Allocation ---
@router.post("/allocate", response_model=AllocationPreviewResponse)
async def preview_allocation(
    payload: AllocationPreviewRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*FEE_MANAGERS)),
) -> AllocationPreviewResponse:
    try:
        return await service.preview_allocation(db, current_user.school_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# --- Payment ---
@router.post(
    "/payments",
    response_model=FeePaymentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_payment(
    payload: FeePaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*FEE_MANAGERS)),
) -> FeePaymentResponse:
    try:
        return await service.record_payment(db, current_user.school_id, payload, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/payments/lump",
    response_model=FeePaymentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_lump_payment(
    payload: LumpPaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*FEE_MANAGERS)),
) -> FeePaymentResponse:
    try:
        return await service.record_lump_payment(db, current_user.school_id, payload, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/payments", response_model=List[FeePaymentResponse])
async def list_payments(
    student_id: UUID,
    month_year: str = Query(..., description="YYYY-MM"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*FEE_MANAGERS)),
) -> List[FeePaymentResponse]:
    try:
        return await service.list_payments(db, current_user.school_id, student_id, month_year)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
