from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class ExamCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    academic_year: str = Field(..., min_length=1, max_length=20, examples=["2025-2026"])


class ExamResponse(BaseModel):
    id: UUID
    school_id: UUID
    name: str
    academic_year: str
    created_at: datetime

    class Config:
        from_attributes = True
