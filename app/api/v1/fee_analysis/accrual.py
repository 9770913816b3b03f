"""
Accrual of fee heads over billing periods.

Recurring fee heads accrue one occurrence per calendar month, each priced with the
override in force at that month's start. One-off fee heads accrue a single
occurrence the first time the student becomes eligible. Nothing accrues past
the fee head's active_to date.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List

from app.api.v1.custom_student_fees.resolver import OverrideResolver
from app.api.v1.fee_settings.service import applies_to_class
from app.core.models import FeeSetting, Student
from app.core.utils import add_months, as_utc, month_start, to_money


@dataclass(frozen=True)
class Occurrence:
    period_year: int
    period_month: int
    priced_at: datetime
    amount: Decimal
    overridden: bool


class AccrualCalculator:
    def __init__(self, resolver: OverrideResolver) -> None:
        self.resolver = resolver

    @staticmethod
    def accrual_start(student: Student, fs: FeeSetting, as_of: date) -> date:
        """Later of the fee head's active_from and the student's enrollment date."""
        candidates = [d for d in (fs.active_from, student.enrolled_on) if d is not None]
        if not candidates:
            # Recurring heads without any start date accrue from the month they were defined
            if fs.recurring and fs.created_at is not None:
                return as_utc(fs.created_at).date()
            return date(as_of.year, as_of.month, 1)
        return max(candidates)

    def is_eligible(self, student: Student, fs: FeeSetting, as_of: datetime) -> bool:
        if not applies_to_class(fs, student.class_name):
            return False
        as_of_day = as_utc(as_of).date()
        start = self.accrual_start(student, fs, as_of_day)
        if start > as_of_day:
            return False
        if fs.active_to is not None and start > fs.active_to:
            return False
        return True

    def _price(self, student: Student, fs: FeeSetting, at: datetime, year: int, month: int) -> Occurrence:
        return Occurrence(
            period_year=year,
            period_month=month,
            priced_at=at,
            amount=self.resolver.resolve(student.id, fs.fee_id, at),
            overridden=self.resolver.override_at(student.id, fs.fee_id, at) is not None,
        )

    def occurrences(self, student: Student, fs: FeeSetting, as_of: datetime) -> List[Occurrence]:
        if not self.is_eligible(student, fs, as_of):
            return []
        as_of_day = as_utc(as_of).date()
        start = self.accrual_start(student, fs, as_of_day)

        if not fs.recurring:
            at = datetime(start.year, start.month, start.day, tzinfo=timezone.utc)
            return [self._price(student, fs, at, start.year, start.month)]

        last_day: date = as_of_day
        if fs.active_to is not None and fs.active_to < last_day:
            last_day = fs.active_to
        result = []
        period = date(start.year, start.month, 1)
        while period <= last_day:
            result.append(self._price(student, fs, month_start(period), period.year, period.month))
            period = add_months(period, 1)
        return result

    def actual_amount(self, student: Student, fs: FeeSetting, as_of: datetime) -> Decimal:
        return to_money(sum((o.amount for o in self.occurrences(student, fs, as_of)), Decimal("0")))

