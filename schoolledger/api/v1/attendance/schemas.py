from datetime import date, datetime
from typing import List, Optional, Union
from uuid import UUID

from pydantic import BaseModel

from schoolledger.core.enums import AttendanceStatus


class AttendanceRecordIn(BaseModel):
    """One student's status for a day. Any time-of-day part of date is dropped (UTC day)."""

    student_id: UUID
    date: Union[datetime, date]
    status: AttendanceStatus


class AttendanceBulkResult(BaseModel):
    message: str = "Attendance recorded successfully."
    matched: int
    upserted: int


class AttendanceRecord(BaseModel):
    id: UUID
    student_id: UUID
    student_name: Optional[str] = None
    roll_number: Optional[str] = None
    date: date
    status: str
    marked_by: Optional[UUID] = None
    marked_by_name: Optional[str] = None
    updated_at: datetime


class AttendanceDayResponse(BaseModel):
    date: date
    class_id: UUID
    records: List[AttendanceRecord]
