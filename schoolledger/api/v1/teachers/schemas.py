from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class TeacherCreate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    subject: str = Field(..., min_length=1, max_length=100)
    contact_number: Optional[str] = Field(None, max_length=50)
    user_id: Optional[UUID] = None


class TeacherResponse(BaseModel):
    id: UUID
    school_id: UUID
    user_id: Optional[UUID] = None
    full_name: str
    subject: str
    contact_number: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
