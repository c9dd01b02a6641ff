from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from schoolledger.core.enums import FeeStatus


class FeeSummaryRow(BaseModel):
    """One student's month: due per class structures, paid per recorded payments."""

    student_id: UUID
    full_name: str
    roll_number: Optional[str] = None
    class_id: Optional[UUID] = None
    class_name: str
    class_section: Optional[str] = None
    amount_due: Decimal
    amount_paid: Decimal
    balance: Decimal
    status: FeeStatus


class DateRange(BaseModel):
    start_date: date
    end_date: date


class AttendanceCounts(BaseModel):
    present: int = 0
    absent: int = 0
    late: int = 0
    leave: int = 0
    total_records: int = 0


class FinancialSummary(BaseModel):
    total_collected_in_period: Decimal = Decimal("0")


class OperationsSummaryResponse(BaseModel):
    date_range: DateRange
    attendance: AttendanceCounts
    financial: FinancialSummary
    student_count: int
