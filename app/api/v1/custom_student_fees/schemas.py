"""Custom student fee (override) schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class CustomStudentFeeCreate(BaseModel):
    student_id: str = Field(..., min_length=1, max_length=50)
    fee_id: str = Field(..., min_length=1, max_length=20)
    new_amount: Decimal = Field(..., ge=0, decimal_places=2)
    effective_from: datetime
    active: bool = True
    reason: Optional[str] = None


class CustomStudentFeeUpdate(BaseModel):
    new_amount: Decimal = Field(..., ge=0, decimal_places=2)
    effective_from: datetime
    active: bool = True
    reason: Optional[str] = None


class CustomStudentFeeResponse(BaseModel):
    student_id: str
    fee_id: str
    new_amount: Decimal
    effective_from: datetime
    active: bool
    reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
