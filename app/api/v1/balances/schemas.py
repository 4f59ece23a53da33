"""Balance schemas. Balances are derived on read and never stored."""

from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class TermBalance(BaseModel):
    fee: Decimal
    paid: Decimal
    balance: Decimal


class TermBalances(BaseModel):
    term1: TermBalance
    term2: TermBalance
    term3: TermBalance


class BalanceResponse(BaseModel):
    academic_year: int
    grade: Optional[str] = None
    # Year of the fee structure used; differs from academic_year when the latest schedule was reused
    fee_structure_year: Optional[int] = None
    total_fee: Decimal
    total_paid: Decimal
    balance: Decimal
    term_balances: TermBalances


class StudentAccountItem(BaseModel):
    student_id: UUID
    admission: Optional[str] = None
    student_name: str
    class_name: str
    expected: Decimal
    paid: Decimal
    balance: Decimal
    term_balances: TermBalances
