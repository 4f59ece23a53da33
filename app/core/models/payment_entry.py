"""Payment ledger: append-only money movements per student."""

import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, Numeric, String, Uuid, event
from sqlalchemy.orm import Session, object_session

from app.core.exceptions import LedgerImmutableError
from app.db.session import Base, utcnow


class PaymentEntry(Base):
    """
    One posted ledger entry. Never updated or deleted; a correction is a
    compensating "reversal" entry with a negative amount and a REV- reference.
    """

    __tablename__ = "payment_entries"
    __table_args__ = (
        CheckConstraint(
            "(method = 'reversal' AND amount < 0) OR (method <> 'reversal' AND amount >= 0)",
            name="ck_payment_entries_signed_amount",
        ),
        CheckConstraint("recorded_by_role = 'accounts'", name="ck_payment_entries_recorded_by_accounts"),
        Index("ix_payment_entries_student_year", "student_id", "academic_year"),
    )
    __immutable__ = True

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    school_id = Column(Uuid, ForeignKey("schools.id", ondelete="RESTRICT"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    method = Column(String(20), nullable=False)  # cash, mpesa, bank, cheque, reversal
    # M-Pesa receipt / bank ref; the unique index is the idempotency gate
    reference = Column(String(120), nullable=False, unique=True)
    term = Column(String(10), nullable=False)  # Term 1, Term 2, Term 3
    academic_year = Column(Integer, nullable=False)
    recorded_by = Column(Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    recorded_by_role = Column(String(20), nullable=False, default="accounts")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


def _reject_change(mapper, connection, target) -> None:
    session = object_session(target)
    if session is None or session.is_modified(target, include_collections=False):
        raise LedgerImmutableError()


def _reject_delete(mapper, connection, target) -> None:
    raise LedgerImmutableError()


def guard_immutable(model) -> None:
    event.listen(model, "before_update", _reject_change)
    event.listen(model, "before_delete", _reject_delete)


guard_immutable(PaymentEntry)


@event.listens_for(Session, "do_orm_execute")
def _reject_bulk_writes(orm_execute_state) -> None:
    if not (orm_execute_state.is_update or orm_execute_state.is_delete):
        return
    mapper = orm_execute_state.bind_mapper
    if mapper is not None and getattr(mapper.class_, "__immutable__", False):
        raise LedgerImmutableError()
