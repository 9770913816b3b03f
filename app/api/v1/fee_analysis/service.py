"""Fee analysis service: reconciles accrued fee amounts against the payment ledger."""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.custom_student_fees.resolver import load_resolver
from app.api.v1.fee_collections import ledger
from app.api.v1.fee_settings.service import load_fee_settings
from app.core.exceptions import NotFoundError, ValidationError
from app.core.models import FeeTransaction, Student
from app.core.utils import as_utc, to_money, utcnow

from .accrual import AccrualCalculator
from .schemas import (
    CollectionEntry,
    FeeAnalysisItem,
    FeeAnalysisResponse,
    FeeAnalysisTotals,
    OccurrenceItem,
    StudentSummary,
)


def _to_entry(tx: FeeTransaction) -> CollectionEntry:
    return CollectionEntry(
        id=tx.id,
        collection_id=tx.collection_id,
        fee_id=tx.fee_id,
        period_month=tx.period_month,
        period_year=tx.period_year,
        quantity=tx.quantity,
        amount_paid=to_money(tx.amount_paid),
        payment_method=tx.payment_method,
        entry_type=tx.entry_type,
        reverses_id=tx.reverses_id,
        description=tx.description,
        paid_at=as_utc(tx.paid_at),
    )


async def get_student(db: AsyncSession, student_id: Optional[str]) -> Student:
    student_id = (student_id or "").strip()
    if not student_id:
        raise ValidationError("student_id is required")
    student = await db.get(Student, student_id)
    if not student:
        raise NotFoundError("Student not found")
    return student


async def analyze(
    db: AsyncSession,
    student_id: str,
    as_of: Optional[datetime] = None,
) -> FeeAnalysisResponse:
    """
    Due/paid/outstanding per applicable fee head, in fee definition order.
    Read only: nothing is written and nothing is cached between calls.
    """
    student = await get_student(db, student_id)
    as_of = as_utc(as_of) if as_of is not None else utcnow()

    version = await ledger.current_version(db, student.id)
    fee_settings = await load_fee_settings(db)
    resolver = await load_resolver(db, student.id, fee_settings)
    calculator = AccrualCalculator(resolver)
    paid_by_fee = await ledger.total_paid(db, student.id)
    entries = [_to_entry(tx) for tx in await ledger.query(db, student.id)]
    entries_by_fee: Dict[str, List[CollectionEntry]] = {}
    for entry in entries:
        entries_by_fee.setdefault(entry.fee_id, []).append(entry)

    items = []
    for fs in fee_settings:
        if not calculator.is_eligible(student, fs, as_of):
            continue
        occurrences = calculator.occurrences(student, fs, as_of)
        actual = to_money(sum((o.amount for o in occurrences), Decimal("0")))
        paid = paid_by_fee.get(fs.fee_id, to_money(0))
        current = resolver.override_at(student.id, fs.fee_id, as_of)
        items.append(
            FeeAnalysisItem(
                fee_id=fs.fee_id,
                fee_type=fs.fee_type,
                description=fs.description,
                recurring=fs.recurring,
                default_amount=to_money(fs.amount),
                actual_amount=actual,
                total_paid=paid,
                due_amount=max(to_money(0), actual - paid),
                is_overridden=current is not None,
                override_reason=current.reason if current is not None else None,
                occurrences=[
                    OccurrenceItem(
                        period_year=o.period_year,
                        period_month=o.period_month,
                        amount=o.amount,
                        overridden=o.overridden,
                    )
                    for o in occurrences
                ],
                collections=entries_by_fee.get(fs.fee_id, []),
            )
        )

    total_actual = to_money(sum((i.actual_amount for i in items), Decimal("0")))
    total_paid = to_money(sum((i.total_paid for i in items), Decimal("0")))
    return FeeAnalysisResponse(
        student=StudentSummary(
            id=student.id,
            name=student.name,
            class_name=student.class_name,
            number=student.number,
            enrolled_on=student.enrolled_on,
        ),
        as_of=as_of,
        ledger_version=version,
        items=items,
        totals=FeeAnalysisTotals(
            total_actual=total_actual,
            total_paid=total_paid,
            total_due=to_money(sum((i.due_amount for i in items), Decimal("0"))),
            net_balance=total_paid - total_actual,
        ),
        collections=entries,
    )
