"""
Ledger store: append-only fee transactions plus the per-student version counter.

Nothing here commits. Callers own the unit of work so that a batch of entries
and its version bump land together or not at all. Totals are always summed
from the immutable rows; no running balance is stored that could lose an update.
"""

from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.fee_settings.service import get_fee_setting
from app.core.enums import LedgerEntryType
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.models import FeeTransaction, StudentLedgerVersion
from app.core.utils import to_money, utcnow


async def insert(db: AsyncSession, tx: FeeTransaction) -> FeeTransaction:
    """Append a payment entry and assign its id."""
    if tx.amount_paid is None or to_money(tx.amount_paid) <= 0:
        raise ValidationError("amount_paid must be greater than zero")
    if (tx.quantity or 1) < 1:
        raise ValidationError("quantity must be at least 1")
    if not await get_fee_setting(db, tx.fee_id):
        raise ValidationError(f"Unknown fee id {tx.fee_id}")
    tx.amount_paid = to_money(tx.amount_paid)
    tx.entry_type = tx.entry_type or LedgerEntryType.PAYMENT.value
    db.add(tx)
    await db.flush()
    return tx


async def get_transaction(db: AsyncSession, transaction_id: int) -> Optional[FeeTransaction]:
    return await db.get(FeeTransaction, transaction_id)


async def query(
    db: AsyncSession,
    student_id: str,
    fee_id: Optional[str] = None,
) -> List[FeeTransaction]:
    """Ledger entries for a student, oldest first."""
    stmt = select(FeeTransaction).where(FeeTransaction.student_id == student_id)
    if fee_id is not None:
        stmt = stmt.where(FeeTransaction.fee_id == fee_id)
    stmt = stmt.order_by(FeeTransaction.id)
    result = await db.execute(stmt)
    return list(result.scalars().all())


def signed_amount():
    """SQL expression: payments count positive, reversals negative."""
    return case(
        (FeeTransaction.entry_type == LedgerEntryType.REVERSAL.value, -FeeTransaction.amount_paid),
        else_=FeeTransaction.amount_paid,
    )


async def total_paid(db: AsyncSession, student_id: str) -> Dict[str, Decimal]:
    """Net amount paid per fee id, including fee heads that no longer exist."""
    result = await db.execute(
        select(FeeTransaction.fee_id, func.coalesce(func.sum(signed_amount()), 0))
        .where(FeeTransaction.student_id == student_id)
        .group_by(FeeTransaction.fee_id)
    )
    return {fee_id: to_money(total) for fee_id, total in result.all()}


async def reverse(
    db: AsyncSession,
    original: FeeTransaction,
    reason: Optional[str] = None,
) -> FeeTransaction:
    """Append a compensating entry for a payment. The original row is left as is."""
    if original.entry_type == LedgerEntryType.REVERSAL.value:
        raise ConflictError("A reversal entry cannot itself be reversed")
    already = await db.execute(
        select(FeeTransaction.id).where(FeeTransaction.reverses_id == original.id)
    )
    if already.scalar_one_or_none() is not None:
        raise ConflictError(f"Transaction {original.id} has already been reversed")
    now = utcnow()
    rev = FeeTransaction(
        student_id=original.student_id,
        fee_id=original.fee_id,
        period_month=original.period_month,
        period_year=original.period_year,
        quantity=original.quantity,
        amount_paid=to_money(original.amount_paid),
        payment_method=original.payment_method,
        entry_type=LedgerEntryType.REVERSAL.value,
        reverses_id=original.id,
        description=(reason or "").strip() or f"Reversal of {original.collection_id}",
        paid_at=now,
    )
    db.add(rev)
    try:
        await db.flush()
    except IntegrityError:
        raise ConflictError(f"Transaction {original.id} has already been reversed")
    return rev


async def list_transactions(
    db: AsyncSession,
    student_id: Optional[str] = None,
    fee_id: Optional[str] = None,
    month: Optional[int] = None,
    year: Optional[int] = None,
    payment_method: Optional[str] = None,
) -> List[FeeTransaction]:
    stmt = select(FeeTransaction)
    if student_id:
        stmt = stmt.where(FeeTransaction.student_id == student_id)
    if fee_id:
        stmt = stmt.where(FeeTransaction.fee_id == fee_id)
    if month is not None:
        stmt = stmt.where(FeeTransaction.period_month == month)
    if year is not None:
        stmt = stmt.where(FeeTransaction.period_year == year)
    if payment_method:
        stmt = stmt.where(FeeTransaction.payment_method == payment_method)
    stmt = stmt.order_by(FeeTransaction.id)
    result = await db.execute(stmt)
    return list(result.scalars().all())


# --- Version counter ---
async def current_version(db: AsyncSession, student_id: str) -> int:
    result = await db.execute(
        select(StudentLedgerVersion.version).where(StudentLedgerVersion.student_id == student_id)
    )
    return result.scalar_one_or_none() or 0


async def bump_version(db: AsyncSession, student_id: str, read_version: int) -> int:
    """Advance the student's version from read_version, or raise ConflictError if it moved."""
    if read_version == 0:
        db.add(StudentLedgerVersion(student_id=student_id, version=1))
        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError("Concurrent payment detected for this student; re-fetch and resubmit")
        return 1
    result = await db.execute(
        update(StudentLedgerVersion)
        .where(
            StudentLedgerVersion.student_id == student_id,
            StudentLedgerVersion.version == read_version,
        )
        .values(version=read_version + 1, updated_at=utcnow())
    )
    if result.rowcount != 1:
        raise ConflictError("Concurrent payment detected for this student; re-fetch and resubmit")
    return read_version + 1
