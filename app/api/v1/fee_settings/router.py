"""Fee settings router: fee head management."""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import FeeSettingCreate, FeeSettingResponse, FeeSettingUpdate
from . import service

router = APIRouter(prefix="/api/v1/fee-settings", tags=["fee-settings"])


@router.get("", response_model=List[FeeSettingResponse])
async def list_fee_settings(
    class_name: Optional[str] = Query(None, description="Only fee heads that apply to this class"),
    fee_type: Optional[str] = Query(None),
    active_only: bool = Query(False, description="Only fee heads whose active window contains today"),
    db: AsyncSession = Depends(get_db),
) -> List[FeeSettingResponse]:
    return await service.list_fee_settings(
        db,
        class_name=class_name,
        fee_type=fee_type,
        active_on=date.today() if active_only else None,
    )


@router.post(
    "",
    response_model=FeeSettingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_fee_setting(
    payload: FeeSettingCreate,
    db: AsyncSession = Depends(get_db),
) -> FeeSettingResponse:
    try:
        return await service.create_fee_setting(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{fee_id}", response_model=FeeSettingResponse)
async def update_fee_setting(
    fee_id: str,
    payload: FeeSettingUpdate,
    db: AsyncSession = Depends(get_db),
) -> FeeSettingResponse:
    try:
        return await service.update_fee_setting(db, fee_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{fee_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_fee_setting(
    fee_id: str,
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        await service.delete_fee_setting(db, fee_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
