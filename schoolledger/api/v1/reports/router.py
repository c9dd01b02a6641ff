"""Reports router: ledgers, fee summary, operations summary, report card."""

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.api.v1.fees.schemas import StudentLedgerResponse
from schoolledger.api.v1.grades import service as grades_service
from schoolledger.api.v1.grades.schemas import ReportCardResponse
from schoolledger.auth.rbac import FEE_MANAGERS, require_roles
from schoolledger.auth.schemas import CurrentUser
from schoolledger.core.enums import UserRole
from schoolledger.core.exceptions import ServiceError
from schoolledger.db.session import get_db

from .schemas import FeeSummaryRow, OperationsSummaryResponse
from . import service

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


@router.get("/student-ledger", response_model=StudentLedgerResponse)
async def student_ledger(
    student_id: UUID,
    month_year: str = Query(..., description="YYYY-MM"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*FEE_MANAGERS)),
) -> StudentLedgerResponse:
    try:
        return await service.get_student_ledger_report(db, current_user.school_id, student_id, month_year)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/fee-summary", response_model=List[FeeSummaryRow])
async def fee_summary(
    month_year: str = Query(..., description="YYYY-MM"),
    class_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*FEE_MANAGERS)),
) -> List[FeeSummaryRow]:
    try:
        return await service.get_fee_summary(db, current_user.school_id, month_year, class_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/summary", response_model=OperationsSummaryResponse)
async def operations_summary(
    start_date: date,
    end_date: date,
    class_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*FEE_MANAGERS)),
) -> OperationsSummaryResponse:
    try:
        return await service.get_operations_summary(db, current_user.school_id, start_date, end_date, class_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/report-card", response_model=ReportCardResponse)
async def report_card(
    student_id: UUID,
    exam_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*FEE_MANAGERS, UserRole.TEACHER)),
) -> ReportCardResponse:
    try:
        return await grades_service.get_report_card(db, current_user.school_id, student_id, exam_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
