"""Fee collections router: payment batches, ledger listing and reversals."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import PaymentMethod
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import CommitResult, FeeCollectionCommitRequest, FeeTransactionResponse, ReversalRequest
from . import service

router = APIRouter(prefix="/api/v1/fee-collections", tags=["fee-collections"])


@router.post(
    "",
    response_model=CommitResult,
    status_code=status.HTTP_201_CREATED,
)
async def commit_fee_collection(
    payload: FeeCollectionCommitRequest,
    db: AsyncSession = Depends(get_db),
) -> CommitResult:
    try:
        result = await service.commit(
            db,
            payload.student_id,
            payload.items,
            expected_version=payload.expected_version,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=result.model_dump(mode="json"),
        )
    return result


@router.get("", response_model=List[FeeTransactionResponse])
async def list_fee_collections(
    student_id: Optional[str] = Query(None),
    fee_id: Optional[str] = Query(None),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None),
    payment_method: Optional[PaymentMethod] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[FeeTransactionResponse]:
    return await service.list_collections(
        db,
        student_id=student_id,
        fee_id=fee_id,
        month=month,
        year=year,
        payment_method=payment_method.value if payment_method else None,
    )


@router.post(
    "/{transaction_id}/reversal",
    response_model=FeeTransactionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def reverse_fee_collection(
    transaction_id: int,
    payload: ReversalRequest,
    db: AsyncSession = Depends(get_db),
) -> FeeTransactionResponse:
    try:
        return await service.reverse_collection(db, transaction_id, reason=payload.reason)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{transaction_id}", response_model=FeeTransactionResponse)
async def delete_fee_collection(
    transaction_id: int,
    db: AsyncSession = Depends(get_db),
) -> FeeTransactionResponse:
    """Ledger rows are never removed: deleting a collection appends its reversal."""
    try:
        return await service.reverse_collection(db, transaction_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
