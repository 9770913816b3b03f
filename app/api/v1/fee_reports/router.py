"""Fee reports router."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db

from .schemas import FeeReportResponse
from . import service

router = APIRouter(prefix="/api/v1/fee-reports", tags=["fee-reports"])


@router.get("", response_model=FeeReportResponse)
async def get_fee_report(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None),
    class_name: Optional[str] = Query(None),
    fee_type: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> FeeReportResponse:
    return await service.get_fee_report(
        db,
        month=month,
        year=year,
        class_name=class_name,
        fee_type=fee_type,
    )
