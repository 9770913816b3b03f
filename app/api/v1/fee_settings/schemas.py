"""Fee setting schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class FeeSettingCreate(BaseModel):
    fee_type: str = Field(..., min_length=1, max_length=50, description="e.g. monthly, exam, books")
    description: str = Field(..., min_length=1)
    amount: Decimal = Field(..., ge=0, decimal_places=2)
    class_scope: Optional[List[str]] = Field(None, description="Class names; omit or null for all classes")
    active_from: Optional[date] = None
    active_to: Optional[date] = None
    can_override: bool = False
    recurring: bool = Field(True, description="Monthly when true, one-off when false")


class FeeSettingUpdate(FeeSettingCreate):
    """PUT body: full replacement of the editable fields."""


class FeeSettingResponse(BaseModel):
    fee_id: str
    position: int
    fee_type: str
    description: str
    amount: Decimal
    class_scope: Optional[List[str]] = None
    active_from: Optional[date] = None
    active_to: Optional[date] = None
    can_override: bool
    recurring: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
