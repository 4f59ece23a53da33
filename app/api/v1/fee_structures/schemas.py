"""Fee structure schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class FeeStructureUpsert(BaseModel):
    grade: str = Field(..., min_length=1, max_length=50, description='e.g. "Grade 5"')
    academic_year: int = Field(..., ge=2000, le=2100)
    term1_fee: Decimal = Field(..., ge=0, decimal_places=2)
    term2_fee: Decimal = Field(..., ge=0, decimal_places=2)
    term3_fee: Decimal = Field(..., ge=0, decimal_places=2)

    @field_validator("grade")
    @classmethod
    def strip_grade(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("grade is required")
        return v


class FeeStructureUpdate(BaseModel):
    grade: Optional[str] = Field(None, min_length=1, max_length=50)
    academic_year: Optional[int] = Field(None, ge=2000, le=2100)
    term1_fee: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    term2_fee: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    term3_fee: Optional[Decimal] = Field(None, ge=0, decimal_places=2)


class FeeStructureResponse(BaseModel):
    id: UUID
    school_id: UUID
    grade: str
    academic_year: int
    term1_fee: Decimal
    term2_fee: Decimal
    term3_fee: Decimal
    total_fee: Decimal
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
