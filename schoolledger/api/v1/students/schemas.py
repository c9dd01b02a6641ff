from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class StudentCreate(BaseModel):
    class_id: UUID
    full_name: str = Field(..., min_length=1, max_length=255)
    roll_number: Optional[str] = Field(None, max_length=50)
    parent_contact: Optional[str] = Field(None, max_length=50)


class StudentResponse(BaseModel):
    id: UUID
    school_id: UUID
    class_id: UUID
    class_name: Optional[str] = None
    full_name: str
    roll_number: Optional[str] = None
    parent_contact: Optional[str] = None
    created_at: datetime
