import logging
from datetime import datetime
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.mpesa import service as mpesa_service
from app.api.v1.mpesa.service import get_or_create_system_actor, ingest_gateway_notification, parse_notification
from app.auth.models import User
from app.core.enums import IngestStatus
from app.core.logging import ExtraFormatter
from app.core.models import PaymentEntry, School

JUNE = datetime(2025, 6, 10, 9, 30)


def stk_callback(receipt="QGH7X1Y2Z3", amount=1000, admission="ADM001", short_code=600100, result_code=0) -> dict:
    return {
        "Body": {
            "stkCallback": {
                "MerchantRequestID": "29115-34620561-1",
                "CheckoutRequestID": "ws_CO_191220191020363925",
                "ResultCode": result_code,
                "ResultDesc": "The service request is processed successfully.",
                "CallbackMetadata": {
                    "Item": [
                        {"Name": "Amount", "Value": amount},
                        {"Name": "MpesaReceiptNumber", "Value": receipt},
                        {"Name": "TransactionDate", "Value": 20250610093000},
                        {"Name": "PhoneNumber", "Value": 254708374149},
                        {"Name": "AccountReference", "Value": admission},
                        {"Name": "BusinessShortCode", "Value": short_code},
                    ]
                },
            }
        }
    }


def c2b_callback(receipt="RKTQDM7W6S", amount="1500.00", admission="ADM001", short_code="600100") -> dict:
    return {
        "TransactionType": "Pay Bill",
        "TransID": receipt,
        "TransTime": "20250610093000",
        "TransAmount": amount,
        "BusinessShortCode": short_code,
        "BillRefNumber": admission,
        "MSISDN": "254708374149",
        "FirstName": "John",
    }


def test_parse_stk_shape() -> None:
    note = parse_notification(stk_callback())
    assert note.amount == Decimal("1000")
    assert note.receipt == "QGH7X1Y2Z3"
    assert note.admission == "ADM001"
    assert note.business_short_code == "600100"
    assert note.phone == "254708374149"


def test_parse_c2b_shape() -> None:
    note = parse_notification(c2b_callback())
    assert note.amount == Decimal("1500.00")
    assert note.receipt == "RKTQDM7W6S"
    assert note.business_short_code == "600100"


@pytest.mark.parametrize(
    "payload",
    [
        {"hello": "world"},
        stk_callback(result_code=1032),
        c2b_callback(amount="abc"),
        {"Body": {"stkCallback": {"ResultCode": 0, "CallbackMetadata": {"Item": []}}}},
        {"Body": {"stkCallback": {"ResultCode": 0, "CallbackMetadata": {"Item": 5}}}},
        {"Body": {"stkCallback": {"ResultCode": 0, "CallbackMetadata": "none"}}},
        {"Body": {"stkCallback": {"ResultCode": 0, "CallbackMetadata": {"Item": [{"Name": ["Amount"], "Value": 1}]}}}},
        {"Body": "stkCallback"},
        c2b_callback(amount="NaN"),
        c2b_callback(receipt="R" * 101),
        None,
        [],
    ],
)
def test_parse_drops_unusable_payloads(payload) -> None:
    assert parse_notification(payload) is None


def test_parse_rounds_fractional_cents_and_logs(caplog) -> None:
    caplog.set_level(logging.INFO, logger="app")
    note = parse_notification(c2b_callback(amount="100.005"))
    assert note.amount == Decimal("100.01")
    record = next(r for r in caplog.records if r.getMessage() == "Gateway amount rounded to cents")
    assert record.raw_amount == "100.005"
    assert record.receipt == "RKTQDM7W6S"


def test_parse_whole_amount_is_not_logged_as_rounded(caplog) -> None:
    caplog.set_level(logging.INFO, logger="app")
    parse_notification(c2b_callback(amount="1500.00"))
    assert "Gateway amount rounded to cents" not in caplog.text


@pytest.mark.asyncio
async def test_stk_notification_is_recorded(db_session: AsyncSession, school: School, student: User) -> None:
    result = await ingest_gateway_notification(db_session, stk_callback(), now=JUNE)
    assert result.status == IngestStatus.RECORDED

    entry = (await db_session.execute(select(PaymentEntry))).scalar_one()
    assert entry.reference == "QGH7X1Y2Z3"
    assert entry.method == "mpesa"
    assert entry.term == "Term 2"
    assert entry.academic_year == 2025
    assert entry.student_id == student.id
    assert entry.recorded_by_role == "accounts"

    actor = await db_session.get(User, entry.recorded_by)
    assert actor.is_system is True
    assert actor.role == "accounts"
    assert actor.password_hash is None


@pytest.mark.asyncio
async def test_redelivery_is_idempotent(db_session: AsyncSession, school: School, student: User) -> None:
    first = await ingest_gateway_notification(db_session, c2b_callback(), now=JUNE)
    second = await ingest_gateway_notification(db_session, c2b_callback(), now=JUNE)
    assert first.status == IngestStatus.RECORDED
    assert second.status == IngestStatus.DUPLICATE

    count = (await db_session.execute(select(func.count()).select_from(PaymentEntry))).scalar_one()
    assert count == 1


@pytest.mark.asyncio
async def test_unknown_school_and_student_are_dropped(db_session: AsyncSession, school: School, student: User) -> None:
    result = await ingest_gateway_notification(db_session, c2b_callback(short_code="999999"), now=JUNE)
    assert result.status == IngestStatus.SCHOOL_NOT_FOUND

    result = await ingest_gateway_notification(db_session, c2b_callback(admission="ADM999"), now=JUNE)
    assert result.status == IngestStatus.STUDENT_NOT_FOUND

    count = (await db_session.execute(select(func.count()).select_from(PaymentEntry))).scalar_one()
    assert count == 0


@pytest.mark.asyncio
async def test_inactive_school_is_not_matched(db_session: AsyncSession, school: School, student: User) -> None:
    school.status = "Inactive"
    await db_session.commit()
    result = await ingest_gateway_notification(db_session, c2b_callback(), now=JUNE)
    assert result.status == IngestStatus.SCHOOL_NOT_FOUND


@pytest.mark.asyncio
async def test_system_actor_is_created_once(db_session: AsyncSession, school: School) -> None:
    a = await get_or_create_system_actor(db_session, school)
    b = await get_or_create_system_actor(db_session, school)
    assert a.id == b.id
    count = (
        await db_session.execute(select(func.count()).select_from(User).where(User.is_system.is_(True)))
    ).scalar_one()
    assert count == 1


@pytest.mark.asyncio
async def test_callback_always_acknowledges(client: AsyncClient, school: School, student: User) -> None:
    for payload in (stk_callback(), stk_callback(), {"unexpected": True}, c2b_callback(short_code="1")):
        resp = await client.post("/api/v1/mpesa/callback", json=payload)
        assert resp.status_code == 200
        assert resp.json() == {"ResultCode": 0, "ResultDesc": "Accepted"}


@pytest.mark.asyncio
async def test_system_actor_cannot_authenticate(
    client: AsyncClient, db_session: AsyncSession, school: School, auth_headers
) -> None:
    actor = await get_or_create_system_actor(db_session, school)
    resp = await client.get("/api/v1/fee-structures", headers=auth_headers(actor))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_malformed_metadata_is_acknowledged(client: AsyncClient, school: School) -> None:
    payload = {"Body": {"stkCallback": {"ResultCode": 0, "CallbackMetadata": {"Item": 5}}}}
    resp = await client.post("/api/v1/mpesa/callback", json=payload)
    assert resp.status_code == 200
    assert resp.json() == {"ResultCode": 0, "ResultDesc": "Accepted"}


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [b"{not json", b"", b"\xff\xfe"])
async def test_non_json_body_is_acknowledged(client: AsyncClient, body: bytes) -> None:
    resp = await client.post(
        "/api/v1/mpesa/callback", content=body, headers={"Content-Type": "application/json"}
    )
    assert resp.status_code == 200
    assert resp.json() == {"ResultCode": 0, "ResultDesc": "Accepted"}


@pytest.mark.asyncio
async def test_receipt_with_reversal_prefix_is_ignored(db_session: AsyncSession, school: School, student: User) -> None:
    result = await ingest_gateway_notification(db_session, c2b_callback(receipt="REV-QGH7X1Y2Z3"), now=JUNE)
    assert result.status == IngestStatus.IGNORED

    count = (await db_session.execute(select(func.count()).select_from(PaymentEntry))).scalar_one()
    assert count == 0


@pytest.mark.asyncio
async def test_unexpected_error_is_logged_with_receipt(
    db_session: AsyncSession, school: School, student: User, monkeypatch, caplog
) -> None:
    async def broken_lookup(db, paybill):
        raise RuntimeError("database went away")

    monkeypatch.setattr(mpesa_service, "find_active_school_by_paybill", broken_lookup)
    caplog.set_level(logging.INFO, logger="app")

    result = await ingest_gateway_notification(db_session, c2b_callback(), now=JUNE)
    assert result.status == IngestStatus.FAILED
    assert result.receipt == "RKTQDM7W6S"

    record = next(r for r in caplog.records if r.getMessage() == "MPESA callback error")
    line = ExtraFormatter("{levelname} {name} {message}", style="{").format(record)
    assert "receipt=RKTQDM7W6S" in line
    assert "database went away" in line
