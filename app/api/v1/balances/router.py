"""Balances router: per-student balance, own balance, and the school accounts summary."""

import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.rbac import BALANCES_READ, SELF_READ, require_capability
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.core.services import get_student_by_admission, resolve_grade
from app.db.session import get_db

from .schemas import BalanceResponse, StudentAccountItem
from . import service

router = APIRouter(prefix="/api/v1/balances", tags=["balances"])


def _year(academic_year: Optional[int]) -> int:
    return academic_year or datetime.date.today().year


@router.get("/accounts", response_model=List[StudentAccountItem])
async def list_student_accounts(
    academic_year: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_capability(BALANCES_READ)),
) -> List[StudentAccountItem]:
    return await service.list_student_accounts(db, current_user.school_id, _year(academic_year))


@router.get("/me", response_model=BalanceResponse)
async def get_my_balance(
    academic_year: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_capability(SELF_READ)),
) -> BalanceResponse:
    student = await db.get(User, current_user.id)
    return await service.get_my_balance(db, student, _year(academic_year))


@router.get("/students/{admission}", response_model=BalanceResponse)
async def get_student_balance(
    admission: str,
    academic_year: Optional[int] = Query(None),
    grade: Optional[str] = Query(None, description="Defaults to the student's enrolled grade"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_capability(BALANCES_READ)),
) -> BalanceResponse:
    year = _year(academic_year)
    try:
        student = await get_student_by_admission(db, current_user.school_id, admission)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    grade = grade or await resolve_grade(db, student.id, year)
    return await service.calculate_balance(db, student, grade, year)
