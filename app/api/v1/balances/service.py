"""Balance calculator: fee structure (with latest-year fallback) minus ledger sums per term."""

from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.core.enums import Term, UserRole
from app.core.models import FeeStructure, PaymentEntry
from app.core.money import ZERO, to_money
from app.core.services import find_enrollment, resolve_grade

from .schemas import BalanceResponse, StudentAccountItem, TermBalance, TermBalances

NOT_ENROLLED = "Not Enrolled"


async def find_fee_structure(
    db: AsyncSession,
    school_id: UUID,
    grade: Optional[str],
    academic_year: int,
) -> Optional[FeeStructure]:
    """Exact (school, grade, year) match, else the latest year on file for the grade."""
    if not grade:
        return None
    exact = (
        await db.execute(
            select(FeeStructure).where(
                FeeStructure.school_id == school_id,
                FeeStructure.grade == grade,
                FeeStructure.academic_year == academic_year,
            )
        )
    ).scalar_one_or_none()
    if exact:
        return exact
    latest = await db.execute(
        select(FeeStructure)
        .where(FeeStructure.school_id == school_id, FeeStructure.grade == grade)
        .order_by(FeeStructure.academic_year.desc())
        .limit(1)
    )
    return latest.scalar_one_or_none()


async def paid_by_term(db: AsyncSession, student_id: UUID, academic_year: int) -> Dict[str, object]:
    """SUM(amount) per term. Reversal entries are negative, so they net out here."""
    result = await db.execute(
        select(PaymentEntry.term, func.sum(PaymentEntry.amount))
        .where(
            PaymentEntry.student_id == student_id,
            PaymentEntry.academic_year == academic_year,
        )
        .group_by(PaymentEntry.term)
    )
    return {term: to_money(total) for term, total in result.all()}


def _term(fee, paid) -> TermBalance:
    return TermBalance(fee=fee, paid=paid, balance=fee - paid)


def _zero_terms() -> TermBalances:
    return TermBalances(term1=_term(ZERO, ZERO), term2=_term(ZERO, ZERO), term3=_term(ZERO, ZERO))


async def calculate_balance(
    db: AsyncSession,
    student: User,
    grade: Optional[str],
    academic_year: int,
) -> BalanceResponse:
    fee = await find_fee_structure(db, student.school_id, grade, academic_year)
    paid = await paid_by_term(db, student.id, academic_year)

    fees = {
        Term.TERM_1.value: to_money(fee.term1_fee) if fee else ZERO,
        Term.TERM_2.value: to_money(fee.term2_fee) if fee else ZERO,
        Term.TERM_3.value: to_money(fee.term3_fee) if fee else ZERO,
    }
    paid_terms = {term: paid.get(term, ZERO) for term in fees}

    total_fee = sum(fees.values(), ZERO)
    total_paid = sum(paid_terms.values(), ZERO)
    return BalanceResponse(
        academic_year=academic_year,
        grade=grade,
        fee_structure_year=fee.academic_year if fee else None,
        total_fee=total_fee,
        total_paid=total_paid,
        balance=total_fee - total_paid,
        term_balances=TermBalances(
            term1=_term(fees[Term.TERM_1.value], paid_terms[Term.TERM_1.value]),
            term2=_term(fees[Term.TERM_2.value], paid_terms[Term.TERM_2.value]),
            term3=_term(fees[Term.TERM_3.value], paid_terms[Term.TERM_3.value]),
        ),
    )


async def get_my_balance(db: AsyncSession, student: User, academic_year: int) -> BalanceResponse:
    """Balance for the student's enrolled grade; without an enrollment, fees count as zero."""
    grade = await resolve_grade(db, student.id, academic_year)
    return await calculate_balance(db, student, grade, academic_year)


async def list_student_accounts(
    db: AsyncSession,
    school_id: UUID,
    academic_year: int,
) -> List[StudentAccountItem]:
    students = (
        await db.execute(
            select(User)
            .where(User.school_id == school_id, User.role == UserRole.STUDENT.value)
            .order_by(User.admission)
        )
    ).scalars().all()

    items = []
    for student in students:
        enrollment = await find_enrollment(db, student.id, academic_year)
        if enrollment:
            bal = await calculate_balance(db, student, enrollment.grade, academic_year)
            expected, paid, balance, terms = bal.total_fee, bal.total_paid, bal.balance, bal.term_balances
        else:
            expected, paid, balance, terms = ZERO, ZERO, ZERO, _zero_terms()
        items.append(
            StudentAccountItem(
                student_id=student.id,
                admission=student.admission,
                student_name=student.full_name,
                class_name=enrollment.grade if enrollment else NOT_ENROLLED,
                expected=expected,
                paid=paid,
                balance=balance,
                term_balances=terms,
            )
        )
    return items
