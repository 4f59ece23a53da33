"""Payments router: record, ledger, self-service history, reversal."""

import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import LEDGER_READ, PAYMENTS_RECORD, PAYMENTS_REVERSE, SELF_READ, require_capability
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import PaymentCreate, PaymentResponse, ReversalCreate, ReversalResponse, StudentLedgerResponse
from . import service

router = APIRouter(prefix="/api/v1/payments", tags=["payments"])


@router.post(
    "/record",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_payment(
    payload: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_capability(PAYMENTS_RECORD)),
) -> PaymentResponse:
    try:
        return await service.record_payment(db, current_user.school_id, current_user.id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/ledger/{admission}", response_model=StudentLedgerResponse)
async def get_student_ledger(
    admission: str,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_capability(LEDGER_READ)),
) -> StudentLedgerResponse:
    try:
        return await service.get_student_ledger(db, current_user.school_id, admission)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/me", response_model=List[PaymentResponse])
async def get_my_payments(
    academic_year: Optional[int] = Query(None, description="Defaults to the current year"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_capability(SELF_READ)),
) -> List[PaymentResponse]:
    year = academic_year or datetime.date.today().year
    return await service.get_my_payments(db, current_user.id, current_user.school_id, year)


@router.post("/reverse", response_model=ReversalResponse, status_code=status.HTTP_201_CREATED)
async def reverse_payment(
    payload: ReversalCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_capability(PAYMENTS_REVERSE)),
) -> ReversalResponse:
    try:
        return await service.reverse_payment(db, current_user.school_id, current_user.id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
