"""Payment ledger schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import PaymentMethod, Term


class PaymentCreate(BaseModel):
    admission: str = Field(..., min_length=1, max_length=50)
    amount: Decimal = Field(..., decimal_places=2)
    method: PaymentMethod
    reference: str = Field(..., min_length=1, max_length=100, description="M-Pesa receipt / bank ref")
    term: Term
    academic_year: Optional[int] = Field(None, ge=2000, le=2100, description="Defaults to the current year")


class PaymentResponse(BaseModel):
    id: UUID
    student_id: UUID
    school_id: UUID
    amount: Decimal
    method: PaymentMethod
    reference: str
    term: Term
    academic_year: int
    recorded_by: UUID
    recorded_by_role: str
    created_at: datetime

    class Config:
        from_attributes = True


class StudentSummary(BaseModel):
    id: UUID
    name: str
    admission: Optional[str] = None


class StudentLedgerResponse(BaseModel):
    student: StudentSummary
    payments: List[PaymentResponse]


class ReversalCreate(BaseModel):
    payment_id: UUID
    reason: str = Field(..., max_length=1000)


class ReversalResponse(BaseModel):
    id: UUID
    payment_id: UUID
    reversal_entry: PaymentResponse
    reason: str
    reversed_by: UUID
    amount: Decimal
    reversed_at: datetime
