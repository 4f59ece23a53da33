"""Payment ledger service: append-only entries and compensating reversals."""

import datetime
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import PaymentMethod, UserRole
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.models import PaymentEntry, PaymentReversal
from app.core.money import ZERO, to_money
from app.core.services import get_student_by_admission

from .schemas import (
    PaymentCreate,
    PaymentResponse,
    ReversalCreate,
    ReversalResponse,
    StudentLedgerResponse,
    StudentSummary,
)

logger = logging.getLogger(__name__)

REVERSAL_PREFIX = "REV-"


def _pe_to_response(pe: PaymentEntry) -> PaymentResponse:
    return PaymentResponse(
        id=pe.id,
        student_id=pe.student_id,
        school_id=pe.school_id,
        amount=to_money(pe.amount),
        method=pe.method,
        reference=pe.reference,
        term=pe.term,
        academic_year=pe.academic_year,
        recorded_by=pe.recorded_by,
        recorded_by_role=pe.recorded_by_role,
        created_at=pe.created_at,
    )


async def reference_exists(db: AsyncSession, reference: str) -> bool:
    found = await db.execute(select(PaymentEntry.id).where(PaymentEntry.reference == reference))
    return found.first() is not None


async def post_entry(db: AsyncSession, entry: PaymentEntry) -> PaymentEntry:
    """
    Append one entry and commit. The unique index on reference decides
    concurrent duplicates: the loser gets ConflictError.
    """
    db.add(entry)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Payment reference already exists")
    await db.refresh(entry)
    return entry


async def record_payment(
    db: AsyncSession,
    school_id: UUID,
    actor_id: UUID,
    payload: PaymentCreate,
) -> PaymentResponse:
    """Manual entry by an accounts operator."""
    student = await get_student_by_admission(db, school_id, payload.admission.strip())

    if payload.method == PaymentMethod.REVERSAL:
        raise ValidationError("Reversals must be created through the reversal workflow")
    amount = to_money(payload.amount)
    if amount <= ZERO:
        raise ValidationError("Amount must be greater than zero")
    reference = payload.reference.strip()
    if not reference:
        raise ValidationError("reference is required")
    if reference.startswith(REVERSAL_PREFIX):
        raise ValidationError(f"References starting with {REVERSAL_PREFIX} are reserved for reversals")
    if await reference_exists(db, reference):
        raise ConflictError("Payment reference already exists")

    entry = await post_entry(
        db,
        PaymentEntry(
            student_id=student.id,
            school_id=school_id,
            amount=amount,
            method=payload.method.value,
            reference=reference,
            term=payload.term.value,
            academic_year=payload.academic_year or datetime.date.today().year,
            recorded_by=actor_id,
            recorded_by_role=UserRole.ACCOUNTS.value,
        ),
    )
    logger.info(
        "Payment recorded",
        extra={"payment_id": str(entry.id), "reference": entry.reference, "school_id": str(school_id)},
    )
    return _pe_to_response(entry)


async def get_student_ledger(db: AsyncSession, school_id: UUID, admission: str) -> StudentLedgerResponse:
    student = await get_student_by_admission(db, school_id, admission)
    result = await db.execute(
        select(PaymentEntry)
        .where(PaymentEntry.student_id == student.id)
        .order_by(PaymentEntry.created_at.desc())
    )
    return StudentLedgerResponse(
        student=StudentSummary(id=student.id, name=student.full_name, admission=student.admission),
        payments=[_pe_to_response(pe) for pe in result.scalars().all()],
    )


async def get_my_payments(
    db: AsyncSession,
    student_id: UUID,
    school_id: Optional[UUID],
    academic_year: int,
) -> List[PaymentResponse]:
    stmt = select(PaymentEntry).where(
        PaymentEntry.student_id == student_id,
        PaymentEntry.academic_year == academic_year,
    )
    if school_id is not None:
        stmt = stmt.where(PaymentEntry.school_id == school_id)
    result = await db.execute(stmt.order_by(PaymentEntry.created_at.desc()))
    return [_pe_to_response(pe) for pe in result.scalars().all()]


async def reverse_payment(
    db: AsyncSession,
    school_id: UUID,
    actor_id: UUID,
    payload: ReversalCreate,
) -> ReversalResponse:
    """
    Cancel a payment's effect without touching it: a PaymentReversal row and a
    negative REV-<reference> entry, written in one transaction.
    """
    original = await db.get(PaymentEntry, payload.payment_id)
    if not original or original.school_id != school_id:
        raise NotFoundError("Payment not found")
    reason = (payload.reason or "").strip()
    if not reason:
        raise ValidationError("A reason is required to reverse a payment")
    if original.method == PaymentMethod.REVERSAL.value:
        raise ValidationError("A reversal entry cannot itself be reversed")

    amount = to_money(original.amount)
    compensating = PaymentEntry(
        student_id=original.student_id,
        school_id=original.school_id,
        amount=-amount,
        method=PaymentMethod.REVERSAL.value,
        reference=f"{REVERSAL_PREFIX}{original.reference}",
        term=original.term,
        academic_year=original.academic_year,
        recorded_by=actor_id,
        recorded_by_role=UserRole.ACCOUNTS.value,
    )
    try:
        db.add(compensating)
        await db.flush()
        reversal = PaymentReversal(
            payment_id=original.id,
            reversal_entry_id=compensating.id,
            reason=reason,
            reversed_by=actor_id,
            amount=amount,
        )
        db.add(reversal)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Payment has already been reversed")

    await db.refresh(compensating)
    await db.refresh(reversal)
    logger.info(
        "Payment reversed",
        extra={"payment_id": str(original.id), "reference": original.reference, "reversed_by": str(actor_id)},
    )
    return ReversalResponse(
        id=reversal.id,
        payment_id=reversal.payment_id,
        reversal_entry=_pe_to_response(compensating),
        reason=reversal.reason,
        reversed_by=reversal.reversed_by,
        amount=to_money(reversal.amount),
        reversed_at=reversal.reversed_at,
    )
