"""M-Pesa schemas: normalized inbound notification and STK push request/response."""

from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import IngestStatus


class GatewayNotification(BaseModel):
    """One inbound payment, whichever callback shape it arrived in."""

    amount: Decimal
    receipt: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = None
    admission: str = Field(..., min_length=1)
    business_short_code: str = Field(..., min_length=1)


class IngestResult(BaseModel):
    status: IngestStatus
    receipt: Optional[str] = None
    payment_id: Optional[UUID] = None


class CallbackAck(BaseModel):
    ResultCode: int = 0
    ResultDesc: str = "Accepted"


class StkPushRequest(BaseModel):
    phone: str = Field(..., min_length=9, max_length=15, description="2547XXXXXXXX")
    amount: Decimal = Field(..., gt=0)
    admission: str = Field(..., min_length=1)


class StkPushResponse(BaseModel):
    message: str
    checkout_request_id: Optional[str] = None
