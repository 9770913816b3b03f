"""Unit tests for accrual of recurring and one-off fee heads."""

from datetime import date, datetime, timezone
from decimal import Decimal

from app.api.v1.custom_student_fees.resolver import OverrideResolver, OverrideRevision
from app.api.v1.fee_analysis.accrual import AccrualCalculator
from app.core.models import FeeSetting, Student


def _student(enrolled_on=date(2026, 1, 10), class_name: str = "One") -> Student:
    return Student(id="S1", name="Rahim", class_name=class_name, enrolled_on=enrolled_on, is_active=True)


def _fee(recurring: bool = True, amount: str = "500.00", **kwargs) -> FeeSetting:
    values = dict(
        fee_id="F001",
        position=1,
        fee_type="monthly",
        description="Tuition fee",
        amount=Decimal(amount),
        class_scope=None,
        active_from=None,
        active_to=None,
        can_override=True,
        recurring=recurring,
        is_active=True,
    )
    values.update(kwargs)
    return FeeSetting(**values)


def _calc(fs: FeeSetting, revisions=()) -> AccrualCalculator:
    return AccrualCalculator(OverrideResolver([fs], revisions))


def _at(year: int, month: int, day: int = 1) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


def test_recurring_accrues_one_occurrence_per_month_since_enrollment() -> None:
    fs = _fee()
    occurrences = _calc(fs).occurrences(_student(), fs, _at(2026, 3, 15))
    assert [(o.period_year, o.period_month) for o in occurrences] == [(2026, 1), (2026, 2), (2026, 3)]
    assert _calc(fs).actual_amount(_student(), fs, _at(2026, 3, 15)) == Decimal("1500.00")


def test_recurring_starts_at_later_of_active_from_and_enrollment() -> None:
    fs = _fee(active_from=date(2026, 2, 1))
    assert _calc(fs).actual_amount(_student(enrolled_on=date(2025, 9, 1)), fs, _at(2026, 3, 15)) == Decimal("1000.00")


def test_recurring_stops_after_active_to() -> None:
    fs = _fee(active_from=date(2026, 1, 1), active_to=date(2026, 2, 28))
    assert _calc(fs).actual_amount(_student(), fs, _at(2026, 6, 1)) == Decimal("1000.00")


def test_mid_year_override_only_reprices_later_occurrences() -> None:
    fs = _fee()
    override = OverrideRevision(
        student_id="S1",
        fee_id="F001",
        new_amount=Decimal("300.00"),
        effective_from=_at(2026, 4),
        active=True,
        reason="scholarship",
        seq=1,
    )
    occurrences = _calc(fs, [override]).occurrences(_student(), fs, _at(2026, 5, 15))
    assert [o.amount for o in occurrences] == [Decimal("500.00")] * 3 + [Decimal("300.00")] * 2
    assert [o.overridden for o in occurrences] == [False, False, False, True, True]
    assert _calc(fs, [override]).actual_amount(_student(), fs, _at(2026, 5, 15)) == Decimal("2100.00")


def test_class_scope_excluding_student_accrues_nothing() -> None:
    fs = _fee(class_scope=["Two", "Three"])
    calc = _calc(fs)
    assert not calc.is_eligible(_student(class_name="One"), fs, _at(2026, 5))
    assert calc.actual_amount(_student(class_name="One"), fs, _at(2026, 5)) == Decimal("0.00")
    assert calc.actual_amount(_student(class_name="Two"), fs, _at(2026, 1, 20)) == Decimal("500.00")


def test_one_off_accrues_once_when_window_opens() -> None:
    fs = _fee(recurring=False, amount="1200.00", active_from=date(2026, 2, 1))
    calc = _calc(fs)
    assert calc.actual_amount(_student(), fs, _at(2026, 1, 20)) == Decimal("0.00")
    assert calc.actual_amount(_student(), fs, _at(2026, 2, 1)) == Decimal("1200.00")
    assert calc.actual_amount(_student(), fs, _at(2026, 11, 1)) == Decimal("1200.00")


def test_one_off_keeps_accrual_after_window_closes() -> None:
    fs = _fee(recurring=False, active_from=date(2026, 1, 1), active_to=date(2026, 3, 31))
    assert _calc(fs).actual_amount(_student(), fs, _at(2026, 9, 1)) == Decimal("500.00")


def test_student_enrolled_after_window_never_accrues() -> None:
    fs = _fee(recurring=False, active_from=date(2025, 1, 1), active_to=date(2025, 12, 31))
    assert _calc(fs).occurrences(_student(enrolled_on=date(2026, 1, 10)), fs, _at(2026, 5)) == []


def test_one_off_without_any_start_date_accrues_in_current_period() -> None:
    fs = _fee(recurring=False)
    occurrences = _calc(fs).occurrences(_student(enrolled_on=None), fs, _at(2026, 7, 9))
    assert [(o.period_year, o.period_month) for o in occurrences] == [(2026, 7)]
    assert occurrences[0].amount == Decimal("500.00")


def test_recurring_without_any_start_date_accrues_since_definition() -> None:
    fs = _fee(created_at=_at(2026, 1, 20))
    student = _student(enrolled_on=None)
    calc = _calc(fs)

    # Every elapsed month adds an occurrence, not just the current one
    assert calc.actual_amount(student, fs, _at(2026, 1, 25)) == Decimal("500.00")
    assert calc.actual_amount(student, fs, _at(2026, 3, 9)) == Decimal("1500.00")
