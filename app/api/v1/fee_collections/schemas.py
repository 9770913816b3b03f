"""Fee collection schemas: payment batches, commit results and ledger entries."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from app.core.enums import PaymentMethod


class CollectionItem(BaseModel):
    """One payment line. Clients send what they pay, never a due amount."""

    fee_id: str = Field(..., min_length=1, max_length=20)
    amount_paid: Decimal = Field(..., gt=0, decimal_places=2)
    payment_method: PaymentMethod = PaymentMethod.CASH
    period_month: Optional[int] = Field(None, ge=1, le=12)
    period_year: Optional[int] = Field(None, ge=2000, le=2100)
    quantity: int = Field(1, ge=1)
    description: Optional[str] = None


class FeeCollectionCommitRequest(BaseModel):
    student_id: str = Field(..., min_length=1, max_length=50)
    items: List[CollectionItem] = Field(..., min_length=1)
    expected_version: Optional[int] = Field(
        None,
        ge=0,
        description="ledger_version from the fee analysis the payment was based on",
    )


class FailedItem(BaseModel):
    index: int
    fee_id: str
    reason: str


class CommitResult(BaseModel):
    success: bool
    student_id: str
    transaction_ids: List[int] = []
    collection_ids: List[str] = []
    total_amount: Decimal = Decimal("0.00")
    failed_items: List[FailedItem] = []
    ledger_version: int


class ReversalRequest(BaseModel):
    reason: Optional[str] = None


class FeeTransactionResponse(BaseModel):
    id: int
    collection_id: str
    student_id: str
    fee_id: str
    period_month: int
    period_year: int
    quantity: int
    amount_paid: Decimal
    payment_method: str
    entry_type: str
    reverses_id: Optional[int] = None
    description: Optional[str] = None
    paid_at: datetime
    created_at: datetime

    class Config:
        from_attributes = True
