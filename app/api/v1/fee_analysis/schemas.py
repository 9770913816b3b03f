"""Fee analysis schemas. Derived on every read, never persisted."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel


class StudentSummary(BaseModel):
    id: str
    name: str
    class_name: str
    number: Optional[str] = None
    enrolled_on: Optional[date] = None


class OccurrenceItem(BaseModel):
    period_year: int
    period_month: int
    amount: Decimal
    overridden: bool


class CollectionEntry(BaseModel):
    id: int
    collection_id: str
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


class FeeAnalysisItem(BaseModel):
    fee_id: str
    fee_type: str
    description: str
    recurring: bool
    default_amount: Decimal
    actual_amount: Decimal
    total_paid: Decimal
    due_amount: Decimal
    is_overridden: bool
    override_reason: Optional[str] = None
    occurrences: List[OccurrenceItem] = []
    collections: List[CollectionEntry] = []


class FeeAnalysisTotals(BaseModel):
    total_actual: Decimal
    total_paid: Decimal
    total_due: Decimal
    net_balance: Decimal


class FeeAnalysisResponse(BaseModel):
    student: StudentSummary
    as_of: datetime
    ledger_version: int
    items: List[FeeAnalysisItem]
    totals: FeeAnalysisTotals
    # Every ledger entry of the student, removed fee heads included
    collections: List[CollectionEntry] = []
