"""Fee settings service: the fee schedule store (fee head CRUD with soft delete)."""

import logging
from datetime import date
from typing import List, Optional, Tuple

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ServiceError, ValidationError
from app.core.models import FeeSetting, IdCounter
from app.core.utils import as_utc, to_money, utcnow

from .schemas import FeeSettingCreate, FeeSettingResponse, FeeSettingUpdate

logger = logging.getLogger(__name__)

FEE_ID_COUNTER = "fee_settings"


def _to_response(fs: FeeSetting) -> FeeSettingResponse:
    return FeeSettingResponse(
        fee_id=fs.fee_id,
        position=fs.position,
        fee_type=fs.fee_type,
        description=fs.description,
        amount=to_money(fs.amount),
        class_scope=fs.class_scope,
        active_from=fs.active_from,
        active_to=fs.active_to,
        can_override=fs.can_override,
        recurring=fs.recurring,
        is_active=fs.is_active,
        created_at=as_utc(fs.created_at),
        updated_at=as_utc(fs.updated_at),
    )


def _normalize_classes(classes: Optional[List[str]]) -> Optional[List[str]]:
    if classes is None:
        return None
    cleaned = [c.strip() for c in classes if c and c.strip()]
    if not cleaned:
        raise ValidationError("class_scope must list at least one class, or be null for all classes")
    return cleaned


def _validate_window(active_from: Optional[date], active_to: Optional[date], recurring: bool) -> None:
    if recurring and active_from is None:
        raise ValidationError("active_from is required for a recurring fee")
    if active_from and active_to and active_to < active_from:
        raise ValidationError("active_to must not be before active_from")


def applies_to_class(fs: FeeSetting, class_name: str) -> bool:
    return fs.class_scope is None or class_name in fs.class_scope


async def _next_fee_id(db: AsyncSession) -> Tuple[str, int]:
    counter = await db.get(IdCounter, FEE_ID_COUNTER, with_for_update=True)
    if counter is None:
        counter = IdCounter(name=FEE_ID_COUNTER, last_id=0)
        db.add(counter)
    counter.last_id += 1
    await db.flush()
    return f"F{counter.last_id:03d}", counter.last_id


async def create_fee_setting(
    db: AsyncSession,
    payload: FeeSettingCreate,
) -> FeeSettingResponse:
    _validate_window(payload.active_from, payload.active_to, payload.recurring)
    classes = _normalize_classes(payload.class_scope)
    try:
        fee_id, position = await _next_fee_id(db)
        fs = FeeSetting(
            fee_id=fee_id,
            position=position,
            fee_type=payload.fee_type.strip(),
            description=payload.description.strip(),
            amount=to_money(payload.amount),
            class_scope=classes,
            active_from=payload.active_from,
            active_to=payload.active_to,
            can_override=payload.can_override,
            recurring=payload.recurring,
            is_active=True,
        )
        db.add(fs)
        await db.commit()
        await db.refresh(fs)
    except IntegrityError:
        await db.rollback()
        raise ServiceError("Fee id already allocated, retry", status.HTTP_409_CONFLICT)
    logger.info("Created fee setting %s (%s, amount=%s)", fs.fee_id, fs.fee_type, fs.amount)
    return _to_response(fs)


async def get_fee_setting(
    db: AsyncSession,
    fee_id: str,
    include_deleted: bool = False,
) -> Optional[FeeSetting]:
    stmt = select(FeeSetting).where(FeeSetting.fee_id == fee_id)
    if not include_deleted:
        stmt = stmt.where(FeeSetting.is_active.is_(True))
    return (await db.execute(stmt)).scalar_one_or_none()


async def load_fee_settings(db: AsyncSession) -> List[FeeSetting]:
    """All live fee heads in definition order."""
    result = await db.execute(
        select(FeeSetting).where(FeeSetting.is_active.is_(True)).order_by(FeeSetting.position)
    )
    return list(result.scalars().all())


async def list_fee_settings(
    db: AsyncSession,
    class_name: Optional[str] = None,
    fee_type: Optional[str] = None,
    active_on: Optional[date] = None,
) -> List[FeeSettingResponse]:
    items = []
    for fs in await load_fee_settings(db):
        if class_name and not applies_to_class(fs, class_name):
            continue
        if fee_type and fs.fee_type != fee_type:
            continue
        if active_on is not None:
            if fs.active_from and active_on < fs.active_from:
                continue
            if fs.active_to and active_on > fs.active_to:
                continue
        items.append(_to_response(fs))
    return items


async def update_fee_setting(
    db: AsyncSession,
    fee_id: str,
    payload: FeeSettingUpdate,
) -> FeeSettingResponse:
    fs = await get_fee_setting(db, fee_id)
    if not fs:
        raise NotFoundError("Fee setting not found")
    _validate_window(payload.active_from, payload.active_to, payload.recurring)
    fs.fee_type = payload.fee_type.strip()
    fs.description = payload.description.strip()
    fs.amount = to_money(payload.amount)
    fs.class_scope = _normalize_classes(payload.class_scope)
    fs.active_from = payload.active_from
    fs.active_to = payload.active_to
    fs.can_override = payload.can_override
    fs.recurring = payload.recurring
    await db.commit()
    await db.refresh(fs)
    logger.info("Updated fee setting %s", fee_id)
    return _to_response(fs)


async def delete_fee_setting(db: AsyncSession, fee_id: str) -> None:
    """Soft delete. Ledger entries against the fee head are left untouched."""
    fs = await get_fee_setting(db, fee_id)
    if not fs:
        raise NotFoundError("Fee setting not found")
    fs.is_active = False
    fs.deleted_at = utcnow()
    await db.commit()
    logger.info("Deleted fee setting %s", fee_id)
