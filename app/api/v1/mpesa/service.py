"""
M-Pesa adapter: turns STK push and C2B confirmation callbacks into ledger entries.

The gateway retries anything that is not a success acknowledgment, so
ingestion never raises. Each notification ends in an IngestResult and a log
line; the reference uniqueness of the ledger makes redeliveries harmless.
"""

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.payments.service import REVERSAL_PREFIX, post_entry, reference_exists
from app.auth.models import User
from app.core.enums import IngestStatus, PaymentMethod, UserRole, term_for_month
from app.core.exceptions import ConflictError, ValidationError
from app.core.models import PaymentEntry, School
from app.core.services import find_active_school_by_paybill, find_student_by_admission, get_school
from app.core.money import ZERO, to_money

from .client import StkPushClient
from .schemas import GatewayNotification, IngestResult, StkPushRequest, StkPushResponse

logger = logging.getLogger(__name__)

SYSTEM_ACTOR_PREFIX = "mpesa"


def _str(val: Any) -> Optional[str]:
    if val is None:
        return None
    return str(val).strip()


def parse_notification(raw: Any) -> Optional[GatewayNotification]:
    """
    Normalize a callback body. Returns None for unknown shapes, failed/cancelled
    STK pushes and payloads missing required fields.
    """
    if not isinstance(raw, dict):
        return None

    body = raw.get("Body")
    stk = body.get("stkCallback") if isinstance(body, dict) else None
    if isinstance(stk, dict):
        if stk.get("ResultCode") != 0:
            logger.info(
                "STK push not completed",
                extra={"result_code": stk.get("ResultCode"), "checkout_request_id": stk.get("CheckoutRequestID")},
            )
            return None
        metadata = stk.get("CallbackMetadata")
        items = metadata.get("Item") if isinstance(metadata, dict) else None
        if not isinstance(items, list):
            items = []
        meta = {
            i["Name"]: i.get("Value")
            for i in items
            if isinstance(i, dict) and isinstance(i.get("Name"), str)
        }
        fields = {
            "amount": meta.get("Amount"),
            "receipt": _str(meta.get("MpesaReceiptNumber")),
            "phone": _str(meta.get("PhoneNumber")),
            "admission": _str(meta.get("AccountReference")),
            "business_short_code": _str(meta.get("BusinessShortCode")),
        }
    elif raw.get("TransID"):
        fields = {
            "amount": raw.get("TransAmount"),
            "receipt": _str(raw.get("TransID")),
            "phone": _str(raw.get("MSISDN")),
            "admission": _str(raw.get("BillRefNumber")),
            "business_short_code": _str(raw.get("BusinessShortCode")),
        }
    else:
        logger.info("Unknown callback format")
        return None

    try:
        if fields["amount"] is not None:
            raw_amount = Decimal(str(fields["amount"]))
            if not raw_amount.is_finite():
                raise InvalidOperation(fields["amount"])
            fields["amount"] = to_money(raw_amount)
            if fields["amount"] != raw_amount:
                logger.warning(
                    "Gateway amount rounded to cents",
                    extra={"receipt": fields["receipt"], "raw_amount": str(raw_amount), "amount": str(fields["amount"])},
                )
        return GatewayNotification(**fields)
    except (InvalidOperation, PydanticValidationError):
        logger.warning("Malformed callback", extra={"receipt": fields.get("receipt")})
        return None


async def get_or_create_system_actor(db: AsyncSession, school: School) -> User:
    """The school's non-human "accounts" actor for gateway payments, created on first use."""
    key = f"{SYSTEM_ACTOR_PREFIX}:{school.id}"
    stmt = select(User).where(User.system_key == key)
    actor = (await db.execute(stmt)).scalar_one_or_none()
    if actor:
        return actor
    actor = User(
        school_id=school.id,
        full_name=f"MPESA System - {school.name}",
        role=UserRole.ACCOUNTS.value,
        is_system=True,
        system_key=key,
        password_hash=None,
    )
    db.add(actor)
    try:
        await db.commit()
    except IntegrityError:
        # created concurrently by another callback
        await db.rollback()
        return (await db.execute(stmt)).scalar_one()
    await db.refresh(actor)
    logger.info("Created system accounts actor", extra={"school_id": str(school.id)})
    return actor


async def _ingest(db: AsyncSession, note: GatewayNotification, now: datetime) -> IngestResult:
    school = await find_active_school_by_paybill(db, note.business_short_code)
    if not school:
        logger.info("No school found with paybill", extra={"paybill": note.business_short_code})
        return IngestResult(status=IngestStatus.SCHOOL_NOT_FOUND, receipt=note.receipt)

    student = await find_student_by_admission(db, school.id, note.admission)
    if not student:
        logger.info(
            "No student found with admission",
            extra={"admission": note.admission, "school_id": str(school.id)},
        )
        return IngestResult(status=IngestStatus.STUDENT_NOT_FOUND, receipt=note.receipt)

    if note.amount <= ZERO:
        logger.warning("Non-positive gateway amount", extra={"receipt": note.receipt})
        return IngestResult(status=IngestStatus.IGNORED, receipt=note.receipt)

    if note.receipt.startswith(REVERSAL_PREFIX):
        logger.warning("Gateway receipt uses the reversal prefix", extra={"receipt": note.receipt})
        return IngestResult(status=IngestStatus.IGNORED, receipt=note.receipt)

    if await reference_exists(db, note.receipt):
        logger.info("Payment already recorded", extra={"receipt": note.receipt})
        return IngestResult(status=IngestStatus.DUPLICATE, receipt=note.receipt)

    actor = await get_or_create_system_actor(db, school)
    try:
        entry = await post_entry(
            db,
            PaymentEntry(
                student_id=student.id,
                school_id=school.id,
                amount=note.amount,
                method=PaymentMethod.MPESA.value,
                reference=note.receipt,
                # TODO: confirm with the bursar whether late payments should target arrears terms
                term=term_for_month(now.month).value,
                academic_year=now.year,
                recorded_by=actor.id,
                recorded_by_role=UserRole.ACCOUNTS.value,
            ),
        )
    except ConflictError:
        logger.info("Payment already recorded", extra={"receipt": note.receipt})
        return IngestResult(status=IngestStatus.DUPLICATE, receipt=note.receipt)

    logger.info(
        "M-Pesa payment recorded",
        extra={"receipt": note.receipt, "amount": str(note.amount), "admission": note.admission, "school_id": str(school.id)},
    )
    return IngestResult(status=IngestStatus.RECORDED, receipt=note.receipt, payment_id=entry.id)


async def ingest_gateway_notification(
    db: AsyncSession,
    raw_payload: Any,
    now: Optional[datetime] = None,
) -> IngestResult:
    note: Optional[GatewayNotification] = None
    try:
        note = parse_notification(raw_payload)
        if note is None:
            return IngestResult(status=IngestStatus.IGNORED)
        return await _ingest(db, note, now or datetime.now())
    except Exception:
        # acknowledged anyway; operators follow up from this log line
        receipt = note.receipt if note else None
        logger.exception("MPESA callback error", extra={"receipt": receipt})
        await db.rollback()
        return IngestResult(status=IngestStatus.FAILED, receipt=receipt)


async def initiate_stk_push(
    db: AsyncSession,
    client: StkPushClient,
    school_id: UUID,
    payload: StkPushRequest,
) -> StkPushResponse:
    school = await get_school(db, school_id)
    if not school.paybill:
        raise ValidationError("School paybill not configured")
    checkout_id = await client.initiate(
        short_code=school.paybill,
        phone=payload.phone,
        amount=Decimal(payload.amount),
        account_reference=payload.admission,
    )
    logger.info("STK initiated", extra={"school_id": str(school_id), "checkout_request_id": checkout_id})
    return StkPushResponse(message="STK push sent", checkout_request_id=checkout_id)
