from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from schoolledger.core.enums import InstitutionType


class RegisterRequest(BaseModel):
    full_name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=8)
    school_name: str = Field(..., min_length=1)
    institution_type: InstitutionType
    address: Optional[str] = None
    phone: Optional[str] = None


class SchoolInfo(BaseModel):
    id: UUID
    school_name: str
    institution_type: str
    owner_user_id: UUID
    created_at: datetime


class UserInfo(BaseModel):
    id: UUID
    school_id: UUID
    full_name: str
    email: EmailStr
    role: str


class RegisterResponse(BaseModel):
    school: SchoolInfo
    owner: UserInfo
    default_class_count: int
    default_fee_head_id: UUID
    access_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserInfo


class CurrentUser(BaseModel):
    """Lightweight representation of the authenticated user; school_id scopes every query."""

    id: UUID
    school_id: UUID
    role: str
    full_name: str
