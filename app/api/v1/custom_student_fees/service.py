"""Custom student fee service: per-student overrides with an append-only revision trail."""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.fee_settings.service import get_fee_setting
from app.core.enums import CustomFeeAction
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.models import CustomStudentFee, CustomStudentFeeRevision, Student
from app.core.utils import as_utc, to_money, utcnow

from .schemas import CustomStudentFeeCreate, CustomStudentFeeResponse, CustomStudentFeeUpdate

logger = logging.getLogger(__name__)


def _to_response(csf: CustomStudentFee) -> CustomStudentFeeResponse:
    return CustomStudentFeeResponse(
        student_id=csf.student_id,
        fee_id=csf.fee_id,
        new_amount=to_money(csf.new_amount),
        effective_from=as_utc(csf.effective_from),
        active=csf.active,
        reason=csf.reason,
        created_at=as_utc(csf.created_at),
        updated_at=as_utc(csf.updated_at),
    )


def _record_revision(
    db: AsyncSession,
    csf: CustomStudentFee,
    action: CustomFeeAction,
    effective_from: datetime,
) -> None:
    db.add(
        CustomStudentFeeRevision(
            student_id=csf.student_id,
            fee_id=csf.fee_id,
            action_type=action.value,
            new_amount=csf.new_amount,
            effective_from=effective_from,
            active=csf.active,
            reason=csf.reason,
        )
    )


def _revision_point(effective_from: datetime, active: bool) -> datetime:
    # Occurrences before now are already priced; an edit or switch-off only applies from here on
    now = utcnow()
    if not active:
        return now
    return max(as_utc(effective_from), now)


async def _require_overridable(db: AsyncSession, fee_id: str) -> None:
    fs = await get_fee_setting(db, fee_id)
    if not fs:
        raise NotFoundError("Fee setting not found")
    if not fs.can_override:
        raise ValidationError(f"Fee {fee_id} does not allow per-student overrides")


async def _get(db: AsyncSession, student_id: str, fee_id: str) -> Optional[CustomStudentFee]:
    result = await db.execute(
        select(CustomStudentFee).where(
            CustomStudentFee.student_id == student_id,
            CustomStudentFee.fee_id == fee_id,
        )
    )
    return result.scalar_one_or_none()


async def create_custom_student_fee(
    db: AsyncSession,
    payload: CustomStudentFeeCreate,
) -> CustomStudentFeeResponse:
    student_id = payload.student_id.strip()
    if not await db.get(Student, student_id):
        raise NotFoundError("Student not found")
    await _require_overridable(db, payload.fee_id)
    if await _get(db, student_id, payload.fee_id):
        raise ConflictError("Custom fee already exists for this student and fee; update it instead")
    effective_from = as_utc(payload.effective_from)
    csf = CustomStudentFee(
        student_id=student_id,
        fee_id=payload.fee_id,
        new_amount=to_money(payload.new_amount),
        effective_from=effective_from,
        active=payload.active,
        reason=(payload.reason or "").strip() or None,
    )
    try:
        db.add(csf)
        await db.flush()
        _record_revision(db, csf, CustomFeeAction.CREATE, effective_from)
        await db.commit()
        await db.refresh(csf)
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Custom fee already exists for this student and fee; update it instead")
    logger.info(
        "Override %s/%s set to %s from %s (active=%s)",
        student_id, csf.fee_id, csf.new_amount, effective_from.isoformat(), csf.active,
    )
    return _to_response(csf)


async def list_custom_student_fees(
    db: AsyncSession,
    student_id: Optional[str] = None,
    fee_id: Optional[str] = None,
    active_only: bool = False,
) -> List[CustomStudentFeeResponse]:
    stmt = select(CustomStudentFee)
    if student_id:
        stmt = stmt.where(CustomStudentFee.student_id == student_id)
    if fee_id:
        stmt = stmt.where(CustomStudentFee.fee_id == fee_id)
    if active_only:
        stmt = stmt.where(CustomStudentFee.active.is_(True))
    stmt = stmt.order_by(CustomStudentFee.id)
    result = await db.execute(stmt)
    return [_to_response(csf) for csf in result.scalars().all()]


async def update_custom_student_fee(
    db: AsyncSession,
    student_id: str,
    fee_id: str,
    payload: CustomStudentFeeUpdate,
) -> CustomStudentFeeResponse:
    """
    Change an override. The new revision takes effect no earlier than now, so
    months that already accrued keep the amount they were priced at.
    """
    csf = await _get(db, student_id, fee_id)
    if not csf:
        raise NotFoundError("Custom student fee not found")
    if payload.active:
        await _require_overridable(db, fee_id)
    effective_from = _revision_point(payload.effective_from, payload.active)
    csf.new_amount = to_money(payload.new_amount)
    csf.effective_from = effective_from
    csf.active = payload.active
    csf.reason = (payload.reason or "").strip() or None
    _record_revision(db, csf, CustomFeeAction.UPDATE, effective_from)
    await db.commit()
    await db.refresh(csf)
    logger.info("Override %s/%s updated (amount=%s, active=%s)", student_id, fee_id, csf.new_amount, csf.active)
    return _to_response(csf)


async def deactivate_custom_student_fee(
    db: AsyncSession,
    student_id: str,
    fee_id: str,
) -> CustomStudentFeeResponse:
    """Turn the override off from now on. The row and its history are kept."""
    csf = await _get(db, student_id, fee_id)
    if not csf:
        raise NotFoundError("Custom student fee not found")
    csf.active = False
    _record_revision(db, csf, CustomFeeAction.DEACTIVATE, utcnow())
    await db.commit()
    await db.refresh(csf)
    logger.info("Override %s/%s deactivated", student_id, fee_id)
    return _to_response(csf)
