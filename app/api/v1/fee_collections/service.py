"""
Fee collection service: commits payment batches against a fresh reconciliation.

For one student, "analyze, validate, append, bump version" runs as a single unit:
an asyncio lock serializes it inside this process, and the conditional version
bump in the ledger catches writers in other processes. A batch is written with a
single commit, so a failed, timed out or cancelled batch leaves no entries behind.
"""

import asyncio
import logging
import weakref
from datetime import datetime
from decimal import Decimal
from typing import Awaitable, Callable, Dict, List, Optional, TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.fee_analysis.service import analyze, get_student
from app.api.v1.fee_settings.service import get_fee_setting
from app.core.config import settings
from app.core.exceptions import ConflictError, NotFoundError, ServiceError, StorageError, ValidationError
from app.core.models import FeeTransaction
from app.core.utils import as_utc, to_money, utcnow

from . import ledger
from .schemas import CollectionItem, CommitResult, FailedItem, FeeTransactionResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Transient storage failures are retried this many times before surfacing
STORAGE_RETRIES = 1

_student_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


def _student_lock(student_id: str) -> asyncio.Lock:
    lock = _student_locks.get(student_id)
    if lock is None:
        lock = asyncio.Lock()
        _student_locks[student_id] = lock
    return lock


def _to_response(tx: FeeTransaction) -> FeeTransactionResponse:
    return FeeTransactionResponse(
        id=tx.id,
        collection_id=tx.collection_id,
        student_id=tx.student_id,
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
        created_at=as_utc(tx.created_at),
    )


async def _run_unit(db: AsyncSession, label: str, unit: Callable[[], Awaitable[T]]) -> T:
    """Run one write unit with a timeout, rolling back on any failure and retrying storage errors once."""
    attempt = 0
    while True:
        try:
            return await asyncio.wait_for(unit(), timeout=settings.storage_timeout_seconds)
        except ServiceError:
            await db.rollback()
            raise
        except IntegrityError as e:
            await db.rollback()
            raise ConflictError("Concurrent modification detected; re-fetch and resubmit") from e
        except (DBAPIError, asyncio.TimeoutError) as e:
            await db.rollback()
            if attempt >= STORAGE_RETRIES:
                logger.error("%s failed after %d attempts: %s", label, attempt + 1, e)
                raise StorageError("Fee ledger storage is unavailable, nothing was recorded") from e
            attempt += 1
            logger.warning("%s hit a storage error, retrying: %s", label, e)
        except BaseException:
            # Cancellation included: never leave a half-written batch in the session
            await db.rollback()
            raise


def _validate_items(items: List[CollectionItem], due: Dict[str, Decimal], known: Dict[str, bool]) -> List[FailedItem]:
    remaining = dict(due)
    failed = []
    for idx, item in enumerate(items):
        amount = to_money(item.amount_paid) if item.amount_paid is not None else None
        reason = None
        if amount is None or amount <= 0:
            reason = "amount_paid must be greater than zero"
        elif item.fee_id not in remaining:
            if known.get(item.fee_id):
                reason = f"Fee {item.fee_id} does not apply to this student"
            else:
                reason = f"Unknown fee id {item.fee_id}"
        elif amount > remaining[item.fee_id]:
            reason = f"amount_paid {amount} exceeds due amount {remaining[item.fee_id]}"
        else:
            remaining[item.fee_id] -= amount
        if reason:
            failed.append(FailedItem(index=idx, fee_id=item.fee_id, reason=reason))
    return failed


async def _commit_once(
    db: AsyncSession,
    student_id: str,
    items: List[CollectionItem],
    expected_version: Optional[int],
    as_of: Optional[datetime],
) -> CommitResult:
    await get_student(db, student_id)
    version = await ledger.current_version(db, student_id)
    if expected_version is not None and expected_version != version:
        raise ConflictError(
            f"Ledger for student {student_id} changed (expected version {expected_version}, "
            f"found {version}); re-fetch the fee analysis and resubmit"
        )

    analysis = await analyze(db, student_id, as_of=as_of)
    due = {i.fee_id: i.due_amount for i in analysis.items}
    descriptions = {i.fee_id: i.description for i in analysis.items}
    known = {}
    for item in items:
        if item.fee_id not in due and item.fee_id not in known:
            known[item.fee_id] = await get_fee_setting(db, item.fee_id) is not None

    failed = _validate_items(items, due, known)
    if failed:
        logger.info("Rejected payment batch for %s: %d of %d items invalid", student_id, len(failed), len(items))
        return CommitResult(success=False, student_id=student_id, failed_items=failed, ledger_version=version)

    paid_at = utcnow()
    entries = []
    for item in items:
        tx = await ledger.insert(
            db,
            FeeTransaction(
                student_id=student_id,
                fee_id=item.fee_id,
                period_month=item.period_month or paid_at.month,
                period_year=item.period_year or paid_at.year,
                quantity=item.quantity,
                amount_paid=item.amount_paid,
                payment_method=item.payment_method.value,
                description=(item.description or "").strip() or descriptions.get(item.fee_id),
                paid_at=paid_at,
            ),
        )
        entries.append(tx)
    new_version = await ledger.bump_version(db, student_id, version)
    await db.commit()

    total = to_money(sum((to_money(tx.amount_paid) for tx in entries), Decimal("0")))
    logger.info(
        "Committed %d payment(s) for %s totalling %s (version %d)",
        len(entries), student_id, total, new_version,
    )
    return CommitResult(
        success=True,
        student_id=student_id,
        transaction_ids=[tx.id for tx in entries],
        collection_ids=[tx.collection_id for tx in entries],
        total_amount=total,
        ledger_version=new_version,
    )


async def commit(
    db: AsyncSession,
    student_id: str,
    items: List[CollectionItem],
    expected_version: Optional[int] = None,
    as_of: Optional[datetime] = None,
) -> CommitResult:
    """
    Validate and append a payment batch for one student, all or nothing.

    Item problems (non-positive amount, unknown or inapplicable fee head, amount
    above what is due) come back as CommitResult(success=False) with nothing
    written. A stale expected_version or a concurrent writer raises ConflictError.
    """
    student_id = (student_id or "").strip()
    if not student_id:
        raise ValidationError("student_id is required")
    if not items:
        raise ValidationError("At least one payment item is required")
    as_of = as_utc(as_of) if as_of is not None else None

    async with _student_lock(student_id):
        try:
            return await _run_unit(
                db,
                f"Payment batch for {student_id}",
                lambda: _commit_once(db, student_id, items, expected_version, as_of),
            )
        except ConflictError:
            logger.warning("Payment batch for %s rejected with a version conflict", student_id)
            raise


async def reverse_collection(
    db: AsyncSession,
    transaction_id: int,
    reason: Optional[str] = None,
) -> FeeTransactionResponse:
    """Undo a payment by appending a compensating entry."""
    original = await ledger.get_transaction(db, transaction_id)
    if not original:
        raise NotFoundError("Fee collection not found")
    student_id = original.student_id
    collection_id = original.collection_id

    async def unit() -> FeeTransaction:
        # A rollback before a retry expires loaded rows, so read the entry again
        entry = await ledger.get_transaction(db, transaction_id)
        version = await ledger.current_version(db, student_id)
        rev = await ledger.reverse(db, entry, reason)
        await ledger.bump_version(db, student_id, version)
        await db.commit()
        return rev

    async with _student_lock(student_id):
        rev = await _run_unit(db, f"Reversal of {collection_id}", unit)
    logger.info("Reversed %s for %s with %s", collection_id, student_id, rev.collection_id)
    return _to_response(rev)


async def list_collections(
    db: AsyncSession,
    student_id: Optional[str] = None,
    fee_id: Optional[str] = None,
    month: Optional[int] = None,
    year: Optional[int] = None,
    payment_method: Optional[str] = None,
) -> List[FeeTransactionResponse]:
    rows = await ledger.list_transactions(
        db,
        student_id=student_id,
        fee_id=fee_id,
        month=month,
        year=year,
        payment_method=payment_method,
    )
    return [_to_response(tx) for tx in rows]
