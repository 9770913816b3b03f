"""Fee analysis router: per-student reconciliation view."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import FeeAnalysisResponse
from . import service

router = APIRouter(prefix="/api/v1/fee-analysis", tags=["fee-analysis"])


@router.get("/{student_id}", response_model=FeeAnalysisResponse)
async def get_fee_analysis(
    student_id: str,
    as_of: Optional[datetime] = Query(None, description="Defaults to now"),
    db: AsyncSession = Depends(get_db),
) -> FeeAnalysisResponse:
    try:
        return await service.analyze(db, student_id, as_of=as_of)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
