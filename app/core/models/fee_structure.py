"""Fee structure: per-term fees for a grade in an academic year."""

import uuid
from decimal import Decimal

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint, Uuid, event

from app.db.session import Base, utcnow


class FeeStructure(Base):
    """Term fees per (school, grade, academic year). total_fee is always term1 + term2 + term3."""

    __tablename__ = "fee_structures"
    __table_args__ = (
        UniqueConstraint("school_id", "grade", "academic_year", name="uq_fee_structure_school_grade_year"),
        CheckConstraint("term1_fee >= 0 AND term2_fee >= 0 AND term3_fee >= 0", name="ck_fee_structure_non_negative"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid, ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    grade = Column(String(50), nullable=False)
    academic_year = Column(Integer, nullable=False)
    term1_fee = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    term2_fee = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    term3_fee = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    total_fee = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def recompute_total(self) -> None:
        self.total_fee = (self.term1_fee or 0) + (self.term2_fee or 0) + (self.term3_fee or 0)


@event.listens_for(FeeStructure, "before_insert")
@event.listens_for(FeeStructure, "before_update")
def _recompute_total(mapper, connection, target: FeeStructure) -> None:
    target.recompute_total()
