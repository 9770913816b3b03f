"""Fee report service: collection totals grouped by payment method, fee type and class."""

from collections import defaultdict
from decimal import Decimal
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.fee_collections import ledger
from app.core.enums import LedgerEntryType
from app.core.models import FeeSetting, Student
from app.core.utils import as_utc, to_money

from .schemas import FeeReportResponse, FeeReportRow, FeeReportSummary

UNKNOWN = "Unknown"


async def get_fee_report(
    db: AsyncSession,
    month: Optional[int] = None,
    year: Optional[int] = None,
    class_name: Optional[str] = None,
    fee_type: Optional[str] = None,
) -> FeeReportResponse:
    txs = await ledger.list_transactions(db, month=month, year=year)

    # Deleted fee heads are still looked up so that old collections keep their labels
    fees: Dict[str, FeeSetting] = {
        fs.fee_id: fs for fs in (await db.execute(select(FeeSetting))).scalars().all()
    }
    student_ids = {tx.student_id for tx in txs}
    students: Dict[str, Student] = {}
    if student_ids:
        result = await db.execute(select(Student).where(Student.id.in_(student_ids)))
        students = {s.id: s for s in result.scalars().all()}

    rows = []
    by_method: Dict[str, Decimal] = defaultdict(lambda: Decimal("0.00"))
    by_type: Dict[str, Decimal] = defaultdict(lambda: Decimal("0.00"))
    by_class: Dict[str, Decimal] = defaultdict(lambda: Decimal("0.00"))
    total = Decimal("0.00")
    for tx in txs:
        student = students.get(tx.student_id)
        fs = fees.get(tx.fee_id)
        if class_name and (not student or student.class_name != class_name):
            continue
        if fee_type and (not fs or fs.fee_type != fee_type):
            continue
        amount = to_money(tx.amount_paid)
        signed = -amount if tx.entry_type == LedgerEntryType.REVERSAL.value else amount
        total += signed
        by_method[tx.payment_method] += signed
        by_type[fs.fee_type if fs else UNKNOWN] += signed
        by_class[student.class_name if student else UNKNOWN] += signed
        rows.append(
            FeeReportRow(
                id=tx.id,
                collection_id=tx.collection_id,
                student_id=tx.student_id,
                student_name=student.name if student else None,
                class_name=student.class_name if student else None,
                fee_id=tx.fee_id,
                fee_type=fs.fee_type if fs else None,
                fee_description=fs.description if fs else None,
                period_month=tx.period_month,
                period_year=tx.period_year,
                amount_paid=amount,
                signed_amount=signed,
                payment_method=tx.payment_method,
                entry_type=tx.entry_type,
                paid_at=as_utc(tx.paid_at),
            )
        )

    return FeeReportResponse(
        summary=FeeReportSummary(
            total_collections=len(rows),
            total_amount=total,
            payment_method_stats=dict(by_method),
            fee_type_stats=dict(by_type),
            class_stats=dict(by_class),
        ),
        collections=rows,
    )
