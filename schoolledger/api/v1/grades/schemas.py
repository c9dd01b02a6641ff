from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from schoolledger.api.v1.exams.schemas import ExamResponse


class GradeIn(BaseModel):
    """Marks for one (student, exam, subject). Saving the same key again overwrites it."""

    student_id: UUID
    class_id: UUID
    exam_id: UUID
    subject: str = Field(..., min_length=1, max_length=100)
    obtained_marks: Decimal = Field(..., ge=0, max_digits=6, decimal_places=2)
    total_marks: Decimal = Field(Decimal("100"), gt=0, max_digits=6, decimal_places=2)
    remarks: Optional[str] = None


class GradeBulkResult(BaseModel):
    message: str = "Grades saved successfully."
    matched: int
    upserted: int


class GradeResponse(BaseModel):
    id: UUID
    student_id: UUID
    student_name: Optional[str] = None
    roll_number: Optional[str] = None
    class_id: UUID
    exam_id: UUID
    subject: str
    obtained_marks: Decimal
    total_marks: Decimal
    remarks: Optional[str] = None
    updated_at: datetime


class ReportCardStudent(BaseModel):
    id: UUID
    full_name: str
    roll_number: Optional[str] = None
    class_id: UUID
    class_name: Optional[str] = None
    section: Optional[str] = None


class ReportCardResponse(BaseModel):
    student: ReportCardStudent
    exam: ExamResponse
    grades: List[GradeResponse]
    total_obtained: Decimal
    total_marks: Decimal
