"""Fee report schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel


class FeeReportRow(BaseModel):
    id: int
    collection_id: str
    student_id: str
    student_name: Optional[str] = None
    class_name: Optional[str] = None
    fee_id: str
    fee_type: Optional[str] = None
    fee_description: Optional[str] = None
    period_month: int
    period_year: int
    amount_paid: Decimal
    signed_amount: Decimal
    payment_method: str
    entry_type: str
    paid_at: datetime


class FeeReportSummary(BaseModel):
    total_collections: int
    total_amount: Decimal
    payment_method_stats: Dict[str, Decimal]
    fee_type_stats: Dict[str, Decimal]
    class_stats: Dict[str, Decimal]


class FeeReportResponse(BaseModel):
    summary: FeeReportSummary
    collections: List[FeeReportRow]
