import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, Text, Uuid

from app.core.models.payment_entry import guard_immutable
from app.db.session import Base, utcnow


class PaymentReversal(Base):
    """Why and by whom a payment was reversed. Paired with a negative REV- ledger entry."""

    __tablename__ = "payment_reversals"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payment_reversals_positive_amount"),
    )
    __immutable__ = True

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    # unique: a payment is reversed at most once
    payment_id = Column(Uuid, ForeignKey("payment_entries.id", ondelete="RESTRICT"), nullable=False, unique=True)
    reversal_entry_id = Column(Uuid, ForeignKey("payment_entries.id", ondelete="RESTRICT"), nullable=False)
    reason = Column(Text, nullable=False)
    reversed_by = Column(Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    reversed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)


guard_immutable(PaymentReversal)
