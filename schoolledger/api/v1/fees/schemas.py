"""Fees schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from schoolledger.core.schemas import MonthYear

from .allocation import AllocationItem


# --- Fee Head ---
class FeeHeadCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    is_one_time: bool = False


class FeeHeadResponse(BaseModel):
    id: UUID
    school_id: UUID
    name: str
    is_one_time: bool
    created_at: datetime

    class Config:
        from_attributes = True


# --- Fee Structure ---
class FeeStructureSet(BaseModel):
    """Set (insert or overwrite) the amount owed for a class, fee head and month."""

    class_id: UUID
    fee_head_id: UUID
    month_year: MonthYear
    amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)


class FeeStructureResponse(BaseModel):
    id: UUID
    school_id: UUID
    class_id: UUID
    fee_head_id: UUID
    fee_head_name: Optional[str] = None
    is_one_time: Optional[bool] = None
    month_year: str
    amount: Decimal
    created_at: datetime
    updated_at: datetime


# --- Payment ---
class FeePaymentItemIn(BaseModel):
    fee_head_id: UUID
    amount_paid: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)


class FeePaymentCreate(BaseModel):
    """Itemized payment. total_amount_paid must equal the sum of items."""

    student_id: UUID
    month_year: MonthYear
    items: List[FeePaymentItemIn] = Field(..., min_length=1)
    total_amount_paid: Decimal = Field(..., ge=1, max_digits=12, decimal_places=2)
    payment_date: Optional[datetime] = None
    remarks: Optional[str] = None

    @model_validator(mode="after")
    def validate_total_matches_items(self) -> "FeePaymentCreate":
        if sum((i.amount_paid for i in self.items), Decimal("0")) != self.total_amount_paid:
            raise ValueError("total_amount_paid must equal the sum of items[].amount_paid")
        return self


class LumpPaymentCreate(BaseModel):
    """Single amount; the server splits it across outstanding fee heads."""

    student_id: UUID
    month_year: MonthYear
    amount: Decimal = Field(..., ge=1, max_digits=12, decimal_places=2)
    payment_date: Optional[datetime] = None
    remarks: Optional[str] = None


class AllocationPreviewRequest(BaseModel):
    student_id: UUID
    month_year: MonthYear
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)


class AllocationPreviewItem(AllocationItem):
    fee_head_name: Optional[str] = None


class AllocationPreviewResponse(BaseModel):
    items: List[AllocationPreviewItem]
    remainder: Decimal
    outstanding_balance: Decimal


class FeePaymentItemResponse(BaseModel):
    fee_head_id: UUID
    fee_head_name: Optional[str] = None
    amount_paid: Decimal


class FeePaymentResponse(BaseModel):
    id: UUID
    school_id: UUID
    student_id: UUID
    class_id: UUID
    month_year: str
    payment_date: datetime
    received_by: Optional[UUID] = None
    received_by_name: Optional[str] = None
    items: List[FeePaymentItemResponse]
    total_amount_paid: Decimal
    remarks: Optional[str] = None
    created_at: datetime


# --- Ledger ---
class LedgerDue(BaseModel):
    """Due, paid and balance for one fee head. balance is negative when overpaid."""

    fee_head_id: UUID
    name: str
    due: Decimal
    paid: Decimal
    balance: Decimal


class LedgerSummary(BaseModel):
    total_due: Decimal
    total_paid: Decimal
    balance: Decimal


class StudentLedgerResponse(BaseModel):
    student_id: UUID
    class_id: UUID
    month_year: str
    dues: List[LedgerDue]
    payments: List[FeePaymentResponse]
    summary: LedgerSummary
