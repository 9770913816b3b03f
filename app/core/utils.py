"""Money and calendar helpers shared by the fee services."""

from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")


def to_money(val) -> Decimal:
    """Coerce to a two-place Decimal. Floats go through str() to avoid binary noise."""
    if val is None:
        return Decimal("0.00")
    d = val if isinstance(val, Decimal) else Decimal(str(val))
    return d.quantize(CENT, rounding=ROUND_HALF_UP)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone=True columns
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def month_start(d: date) -> datetime:
    """Midnight UTC on the first day of the month containing d."""
    return datetime(d.year, d.month, 1, tzinfo=timezone.utc)


def add_months(d: date, months: int) -> date:
    idx = d.year * 12 + (d.month - 1) + months
    return date(idx // 12, idx % 12 + 1, 1)
