"""Fee structure service: per-term fees per grade and academic year."""

from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.core.models import FeeStructure
from app.core.money import to_money
from app.core.services import resolve_grade
from app.db.session import utcnow

from .schemas import FeeStructureResponse, FeeStructureUpdate, FeeStructureUpsert


def _fs_to_response(fs: FeeStructure) -> FeeStructureResponse:
    return FeeStructureResponse(
        id=fs.id,
        school_id=fs.school_id,
        grade=fs.grade,
        academic_year=fs.academic_year,
        term1_fee=to_money(fs.term1_fee),
        term2_fee=to_money(fs.term2_fee),
        term3_fee=to_money(fs.term3_fee),
        total_fee=to_money(fs.total_fee),
        created_at=fs.created_at,
        updated_at=fs.updated_at,
    )


def _insert_for(db: AsyncSession):
    """Dialect insert construct that supports ON CONFLICT."""
    if db.bind.dialect.name == "sqlite":
        return sqlite.insert
    return postgresql.insert


async def _get_owned(db: AsyncSession, fee_structure_id: UUID, school_id: UUID) -> FeeStructure:
    fs = await db.get(FeeStructure, fee_structure_id)
    if not fs:
        raise NotFoundError("Fee structure not found")
    if fs.school_id != school_id:
        raise AuthorizationError("Not allowed")
    return fs


async def upsert_fee_structure(
    db: AsyncSession,
    school_id: UUID,
    payload: FeeStructureUpsert,
) -> FeeStructureResponse:
    """Create or replace the fees for (school, grade, year) in one conditional write."""
    term1, term2, term3 = to_money(payload.term1_fee), to_money(payload.term2_fee), to_money(payload.term3_fee)
    fees = {
        "term1_fee": term1,
        "term2_fee": term2,
        "term3_fee": term3,
        "total_fee": term1 + term2 + term3,
    }
    insert = _insert_for(db)
    stmt = insert(FeeStructure).values(
        school_id=school_id,
        grade=payload.grade,
        academic_year=payload.academic_year,
        **fees,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["school_id", "grade", "academic_year"],
        set_={**fees, "updated_at": utcnow()},
    )
    try:
        await db.execute(stmt)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Fee structure already exists")

    fs = (
        await db.execute(
            select(FeeStructure)
            .where(
                FeeStructure.school_id == school_id,
                FeeStructure.grade == payload.grade,
                FeeStructure.academic_year == payload.academic_year,
            )
            .execution_options(populate_existing=True)
        )
    ).scalar_one()
    return _fs_to_response(fs)


async def list_fee_structures(db: AsyncSession, school_id: UUID) -> List[FeeStructureResponse]:
    result = await db.execute(
        select(FeeStructure)
        .where(FeeStructure.school_id == school_id)
        .order_by(FeeStructure.academic_year.desc(), FeeStructure.grade.asc())
    )
    return [_fs_to_response(fs) for fs in result.scalars().all()]


async def update_fee_structure(
    db: AsyncSession,
    fee_structure_id: UUID,
    school_id: UUID,
    payload: FeeStructureUpdate,
) -> FeeStructureResponse:
    fs = await _get_owned(db, fee_structure_id, school_id)
    if payload.grade is not None:
        grade = payload.grade.strip()
        if not grade:
            raise ValidationError("grade cannot be blank")
        fs.grade = grade
    if payload.academic_year is not None:
        fs.academic_year = payload.academic_year
    if payload.term1_fee is not None:
        fs.term1_fee = to_money(payload.term1_fee)
    if payload.term2_fee is not None:
        fs.term2_fee = to_money(payload.term2_fee)
    if payload.term3_fee is not None:
        fs.term3_fee = to_money(payload.term3_fee)
    fs.recompute_total()
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Fee structure already exists")
    await db.refresh(fs)
    return _fs_to_response(fs)


async def delete_fee_structure(db: AsyncSession, fee_structure_id: UUID, school_id: UUID) -> None:
    fs = await _get_owned(db, fee_structure_id, school_id)
    await db.delete(fs)
    await db.commit()


async def get_my_fee_structure(
    db: AsyncSession,
    student: User,
    academic_year: int,
) -> FeeStructureResponse:
    """Exact-year fee structure for the student's enrolled grade. No fallback."""
    grade = await resolve_grade(db, student.id, academic_year)
    if not grade:
        raise ValidationError("Student grade not available")
    fs = (
        await db.execute(
            select(FeeStructure).where(
                FeeStructure.school_id == student.school_id,
                FeeStructure.grade == grade,
                FeeStructure.academic_year == academic_year,
            )
        )
    ).scalar_one_or_none()
    if not fs:
        raise NotFoundError("Fee structure not found for the selected academic year")
    return _fs_to_response(fs)
