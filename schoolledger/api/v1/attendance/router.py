"""Attendance API router."""

from datetime import date
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.auth.dependencies import get_current_user
from schoolledger.auth.rbac import ACADEMIC_STAFF, require_roles
from schoolledger.auth.schemas import CurrentUser
from schoolledger.core.exceptions import ServiceError
from schoolledger.db.session import get_db

from . import service
from .schemas import AttendanceBulkResult, AttendanceDayResponse, AttendanceRecordIn

router = APIRouter(prefix="/api/v1/attendance", tags=["attendance"])


@router.post("", response_model=AttendanceBulkResult)
async def record_attendance(
    payload: List[AttendanceRecordIn],
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*ACADEMIC_STAFF)),
) -> AttendanceBulkResult:
    """Body: [{"student_id": ..., "date": "2025-10-01", "status": "Present"}, ...]"""
    try:
        result = await service.record_attendance_bulk(db, current_user.school_id, current_user.id, payload)
        return AttendanceBulkResult(matched=result.matched, upserted=result.upserted)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=AttendanceDayResponse)
async def get_attendance(
    class_id: UUID,
    att_date: date = Query(..., alias="date", description="YYYY-MM-DD"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AttendanceDayResponse:
    try:
        return await service.get_attendance(db, current_user.school_id, att_date, class_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
