"""Fee structure router: accounts manage term fees; students read their own."""

import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.rbac import FEES_READ, FEES_WRITE, SELF_READ, require_capability
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import FeeStructureResponse, FeeStructureUpdate, FeeStructureUpsert
from . import service

router = APIRouter(prefix="/api/v1/fee-structures", tags=["fee-structures"])


@router.post("", response_model=FeeStructureResponse)
async def upsert_fee_structure(
    payload: FeeStructureUpsert,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_capability(FEES_WRITE)),
) -> FeeStructureResponse:
    try:
        return await service.upsert_fee_structure(db, current_user.school_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[FeeStructureResponse])
async def list_fee_structures(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_capability(FEES_READ)),
) -> List[FeeStructureResponse]:
    return await service.list_fee_structures(db, current_user.school_id)


@router.get("/me", response_model=FeeStructureResponse)
async def get_my_fee_structure(
    academic_year: Optional[int] = Query(None, description="Defaults to the current year"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_capability(SELF_READ)),
) -> FeeStructureResponse:
    year = academic_year or datetime.date.today().year
    student = await db.get(User, current_user.id)
    try:
        return await service.get_my_fee_structure(db, student, year)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{fee_structure_id}", response_model=FeeStructureResponse)
async def update_fee_structure(
    fee_structure_id: UUID,
    payload: FeeStructureUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_capability(FEES_WRITE)),
) -> FeeStructureResponse:
    try:
        return await service.update_fee_structure(db, fee_structure_id, current_user.school_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{fee_structure_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_fee_structure(
    fee_structure_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_capability(FEES_WRITE)),
) -> None:
    try:
        await service.delete_fee_structure(db, fee_structure_id, current_user.school_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
