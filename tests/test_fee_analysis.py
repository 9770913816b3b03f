from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.custom_student_fees import service as custom_fee_service
from app.api.v1.custom_student_fees.schemas import CustomStudentFeeCreate, CustomStudentFeeUpdate
from app.api.v1.fee_analysis.service import analyze
from app.api.v1.fee_collections import ledger
from app.api.v1.fee_settings import service as fee_settings_service
from app.core.exceptions import NotFoundError, ValidationError
from app.core.models import FeeTransaction
from app.core.utils import utcnow


def _at(year: int, month: int, day: int = 1) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


async def _pay(db: AsyncSession, fee_id: str, amount: str, student_id: str = "S1") -> FeeTransaction:
    tx = await ledger.insert(
        db,
        FeeTransaction(
            student_id=student_id,
            fee_id=fee_id,
            period_month=1,
            period_year=2026,
            quantity=1,
            amount_paid=Decimal(amount),
            payment_method="Cash",
            paid_at=_at(2026, 1, 5),
        ),
    )
    await db.commit()
    return tx


@pytest.mark.asyncio
async def test_no_override_no_payment_due_equals_actual(db_session, make_student, make_fee) -> None:
    await make_student()
    fee = await make_fee(amount="500", can_override=True)

    result = await analyze(db_session, "S1", as_of=_at(2026, 3, 1))

    assert len(result.items) == 1
    item = result.items[0]
    assert item.fee_id == fee.fee_id
    assert item.actual_amount == Decimal("500.00")
    assert item.total_paid == Decimal("0.00")
    assert item.due_amount == Decimal("500.00")
    assert item.is_overridden is False
    assert result.ledger_version == 0


@pytest.mark.asyncio
async def test_items_follow_fee_definition_order(db_session, make_student, make_fee) -> None:
    await make_student()
    first = await make_fee(description="Admission")
    second = await make_fee(description="Books", amount="300")
    third = await make_fee(description="Exam", amount="200")

    result = await analyze(db_session, "S1", as_of=_at(2026, 3, 1))

    assert [i.fee_id for i in result.items] == [first.fee_id, second.fee_id, third.fee_id]


@pytest.mark.asyncio
async def test_fee_for_other_class_is_not_listed(db_session, make_student, make_fee) -> None:
    await make_student(class_name="One")
    await make_fee(class_scope=["Two"])
    kept = await make_fee(class_scope=["One", "Two"])

    result = await analyze(db_session, "S1", as_of=_at(2026, 3, 1))

    assert [i.fee_id for i in result.items] == [kept.fee_id]


@pytest.mark.asyncio
async def test_payments_reduce_due_and_never_go_negative(db_session, make_student, make_fee) -> None:
    await make_student()
    fee = await make_fee(amount="500")
    await _pay(db_session, fee.fee_id, "200")
    await _pay(db_session, fee.fee_id, "100")

    item = (await analyze(db_session, "S1", as_of=_at(2026, 3, 1))).items[0]
    assert item.total_paid == Decimal("300.00")
    assert item.due_amount == Decimal("200.00")

    # Cheaper override after the payments: paid exceeds actual, due stays at zero
    await custom_fee_service.create_custom_student_fee(
        db_session,
        CustomStudentFeeCreate(
            student_id="S1",
            fee_id=fee.fee_id,
            new_amount=Decimal("250"),
            effective_from=_at(2020, 1, 1),
            reason="sibling discount",
        ),
    )
    result = await analyze(db_session, "S1", as_of=_at(2026, 3, 1))
    item = result.items[0]
    assert item.actual_amount == Decimal("250.00")
    assert item.due_amount == Decimal("0.00")
    assert item.is_overridden is True
    assert item.override_reason == "sibling discount"
    assert result.totals.net_balance == Decimal("50.00")


@pytest.mark.asyncio
async def test_future_override_keeps_accrued_months_at_old_price(db_session, make_student, make_fee) -> None:
    await make_student(enrolled_on=date(2026, 1, 1))
    fee = await make_fee(amount="500", recurring=True, active_from=date(2026, 1, 1))
    await custom_fee_service.create_custom_student_fee(
        db_session,
        CustomStudentFeeCreate(
            student_id="S1",
            fee_id=fee.fee_id,
            new_amount=Decimal("300"),
            effective_from=_at(2026, 4, 1),
            reason="scholarship",
        ),
    )

    before = (await analyze(db_session, "S1", as_of=_at(2026, 3, 20))).items[0]
    after = (await analyze(db_session, "S1", as_of=_at(2026, 5, 20))).items[0]

    assert before.actual_amount == Decimal("1500.00")
    assert after.actual_amount == Decimal("2100.00")
    assert [o.amount for o in after.occurrences][:3] == [Decimal("500.00")] * 3


def _priced_before(occurrence, moment: datetime) -> bool:
    return _at(occurrence.period_year, occurrence.period_month) < moment


async def _override_then_change(db: AsyncSession, fee_id: str, change: CustomStudentFeeUpdate) -> datetime:
    await custom_fee_service.create_custom_student_fee(
        db,
        CustomStudentFeeCreate(
            student_id="S1",
            fee_id=fee_id,
            new_amount=Decimal("300"),
            effective_from=_at(2024, 1, 1),
        ),
    )
    changed_at = utcnow()
    await custom_fee_service.update_custom_student_fee(db, "S1", fee_id, change)
    return changed_at


@pytest.mark.asyncio
async def test_editing_override_keeps_accrued_months(db_session, make_student, make_fee) -> None:
    await make_student()
    fee = await make_fee(amount="500", recurring=True)
    changed_at = await _override_then_change(
        db_session,
        fee.fee_id,
        CustomStudentFeeUpdate(new_amount=Decimal("200"), effective_from=_at(2024, 1, 1)),
    )

    item = (await analyze(db_session, "S1", as_of=changed_at + timedelta(days=70))).items[0]

    past = [o.amount for o in item.occurrences if _priced_before(o, changed_at)]
    upcoming = [o.amount for o in item.occurrences if not _priced_before(o, changed_at)]
    assert past and upcoming
    assert set(past) == {Decimal("300.00")}
    assert set(upcoming) == {Decimal("200.00")}
    assert item.is_overridden is True


@pytest.mark.asyncio
async def test_deactivating_override_restores_base_amount_from_now_on(db_session, make_student, make_fee) -> None:
    await make_student()
    fee = await make_fee(amount="500", recurring=True)
    changed_at = await _override_then_change(
        db_session,
        fee.fee_id,
        CustomStudentFeeUpdate(new_amount=Decimal("300"), effective_from=_at(2024, 1, 1), active=False),
    )

    item = (await analyze(db_session, "S1", as_of=changed_at + timedelta(days=70))).items[0]

    past = [o.amount for o in item.occurrences if _priced_before(o, changed_at)]
    upcoming = [o.amount for o in item.occurrences if not _priced_before(o, changed_at)]
    assert set(past) == {Decimal("300.00")}
    assert set(upcoming) == {Decimal("500.00")}
    assert item.is_overridden is False


@pytest.mark.asyncio
async def test_deactivating_one_off_override_keeps_its_price(db_session, make_student, make_fee) -> None:
    await make_student()
    fee = await make_fee(amount="500")
    await custom_fee_service.create_custom_student_fee(
        db_session,
        CustomStudentFeeCreate(
            student_id="S1",
            fee_id=fee.fee_id,
            new_amount=Decimal("100"),
            effective_from=_at(2020, 1, 1),
        ),
    )

    await custom_fee_service.deactivate_custom_student_fee(db_session, "S1", fee.fee_id)

    item = (await analyze(db_session, "S1")).items[0]
    assert item.actual_amount == Decimal("100.00")
    assert item.is_overridden is False


@pytest.mark.asyncio
async def test_analyze_is_idempotent(db_session, make_student, make_fee) -> None:
    await make_student()
    fee = await make_fee(amount="500", recurring=True)
    await make_fee(amount="150")
    await _pay(db_session, fee.fee_id, "120.50")

    first = await analyze(db_session, "S1", as_of=_at(2026, 6, 1))
    second = await analyze(db_session, "S1", as_of=_at(2026, 6, 1))

    assert first.items == second.items
    assert first.totals == second.totals


@pytest.mark.asyncio
async def test_deleted_fee_leaves_history_and_other_fees_untouched(db_session, make_student, make_fee) -> None:
    await make_student()
    f1 = await make_fee(amount="500")
    f2 = await make_fee(amount="300")
    await _pay(db_session, f1.fee_id, "200")
    await _pay(db_session, f2.fee_id, "50")
    before = (await analyze(db_session, "S1", as_of=_at(2026, 3, 1))).items[1]

    await fee_settings_service.delete_fee_setting(db_session, f1.fee_id)

    result = await analyze(db_session, "S1", as_of=_at(2026, 3, 1))
    assert [i.fee_id for i in result.items] == [f2.fee_id]
    assert result.items[0] == before
    assert (await ledger.total_paid(db_session, "S1"))[f1.fee_id] == Decimal("200.00")
    assert len(await ledger.query(db_session, "S1", f1.fee_id)) == 1
    assert [c.fee_id for c in result.collections] == [f1.fee_id, f2.fee_id]


@pytest.mark.asyncio
async def test_analysis_lists_ledger_entries_per_fee(db_session, make_student, make_fee) -> None:
    await make_student()
    tuition = await make_fee(amount="500")
    books = await make_fee(amount="300", description="Books")
    first = await _pay(db_session, tuition.fee_id, "200")
    second = await _pay(db_session, tuition.fee_id, "100")
    await _pay(db_session, books.fee_id, "300")

    result = await analyze(db_session, "S1", as_of=_at(2026, 3, 1))

    tuition_item, books_item = result.items
    assert [c.id for c in tuition_item.collections] == [first.id, second.id]
    assert tuition_item.collections[0].collection_id == f"C{first.id:05d}"
    assert tuition_item.collections[0].amount_paid == Decimal("200.00")
    assert [c.amount_paid for c in books_item.collections] == [Decimal("300.00")]
    assert len(result.collections) == 3


@pytest.mark.asyncio
async def test_unknown_student_raises_not_found(db_session) -> None:
    with pytest.raises(NotFoundError):
        await analyze(db_session, "NOPE")


@pytest.mark.asyncio
async def test_blank_student_id_is_rejected(db_session) -> None:
    with pytest.raises(ValidationError):
        await analyze(db_session, "  ")
