"""Custom student fees router: per-student fee overrides."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import CustomStudentFeeCreate, CustomStudentFeeResponse, CustomStudentFeeUpdate
from . import service

router = APIRouter(prefix="/api/v1/custom-student-fees", tags=["custom-student-fees"])


@router.get("", response_model=List[CustomStudentFeeResponse])
async def list_custom_student_fees(
    student_id: Optional[str] = Query(None),
    fee_id: Optional[str] = Query(None),
    active: bool = Query(False, description="Return only active overrides"),
    db: AsyncSession = Depends(get_db),
) -> List[CustomStudentFeeResponse]:
    return await service.list_custom_student_fees(
        db, student_id=student_id, fee_id=fee_id, active_only=active
    )


@router.post(
    "",
    response_model=CustomStudentFeeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_custom_student_fee(
    payload: CustomStudentFeeCreate,
    db: AsyncSession = Depends(get_db),
) -> CustomStudentFeeResponse:
    try:
        return await service.create_custom_student_fee(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{student_id}/{fee_id}", response_model=CustomStudentFeeResponse)
async def update_custom_student_fee(
    student_id: str,
    fee_id: str,
    payload: CustomStudentFeeUpdate,
    db: AsyncSession = Depends(get_db),
) -> CustomStudentFeeResponse:
    try:
        return await service.update_custom_student_fee(db, student_id, fee_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{student_id}/{fee_id}", response_model=CustomStudentFeeResponse)
async def deactivate_custom_student_fee(
    student_id: str,
    fee_id: str,
    db: AsyncSession = Depends(get_db),
) -> CustomStudentFeeResponse:
    try:
        return await service.deactivate_custom_student_fee(db, student_id, fee_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
