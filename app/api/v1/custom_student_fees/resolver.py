"""
Resolve the effective per-occurrence amount of a fee head for a student.

The resolver works on a snapshot loaded once per request: the fee heads plus the
override revision history of one student. resolve() itself never touches the
database, so an analysis prices every occurrence against the same state.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.core.models import CustomStudentFeeRevision, FeeSetting
from app.core.utils import as_utc, to_money


@dataclass(frozen=True)
class OverrideRevision:
    student_id: str
    fee_id: str
    new_amount: Decimal
    effective_from: datetime
    active: bool
    reason: Optional[str]
    seq: int


class OverrideResolver:
    def __init__(
        self,
        fee_settings: Iterable[FeeSetting],
        revisions: Iterable[OverrideRevision] = (),
    ) -> None:
        self._fees: Dict[str, FeeSetting] = {fs.fee_id: fs for fs in fee_settings}
        self._history: Dict[Tuple[str, str], List[OverrideRevision]] = {}
        for rev in revisions:
            self._history.setdefault((rev.student_id, rev.fee_id), []).append(rev)
        for revs in self._history.values():
            revs.sort(key=lambda r: r.seq)

    def fee_setting(self, fee_id: str) -> FeeSetting:
        fs = self._fees.get(fee_id)
        if fs is None:
            raise NotFoundError(f"Fee setting {fee_id} not found")
        return fs

    def override_at(self, student_id: str, fee_id: str, as_of: datetime) -> Optional[OverrideRevision]:
        """Active override in force at as_of, or None when the base amount applies."""
        fs = self.fee_setting(fee_id)
        if not fs.can_override:
            return None
        as_of = as_utc(as_of)
        # Among revisions already effective at as_of, the most recently recorded one rules
        in_force = None
        for rev in self._history.get((student_id, fee_id), ()):
            if rev.effective_from <= as_of:
                in_force = rev
        if in_force is None or not in_force.active:
            return None
        return in_force

    def resolve(self, student_id: str, fee_id: str, as_of: datetime) -> Decimal:
        rev = self.override_at(student_id, fee_id, as_of)
        if rev is not None:
            return rev.new_amount
        return to_money(self.fee_setting(fee_id).amount)


def _to_revision(row: CustomStudentFeeRevision) -> OverrideRevision:
    return OverrideRevision(
        student_id=row.student_id,
        fee_id=row.fee_id,
        new_amount=to_money(row.new_amount),
        effective_from=as_utc(row.effective_from),
        active=row.active,
        reason=row.reason,
        seq=row.id,
    )


async def load_resolver(
    db: AsyncSession,
    student_id: str,
    fee_settings: Iterable[FeeSetting],
) -> OverrideResolver:
    result = await db.execute(
        select(CustomStudentFeeRevision)
        .where(CustomStudentFeeRevision.student_id == student_id)
        .order_by(CustomStudentFeeRevision.id)
    )
    return OverrideResolver(fee_settings, [_to_revision(r) for r in result.scalars().all()])
