from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ClassCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    section: Optional[str] = Field(None, max_length=20)


class ClassResponse(BaseModel):
    id: UUID
    school_id: UUID
    name: str
    section: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
