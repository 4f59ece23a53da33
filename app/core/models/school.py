import uuid

from sqlalchemy import Column, DateTime, String, Uuid

from app.db.session import Base, utcnow


class School(Base):
    """A tenant school. `paybill` is the M-Pesa short code payments arrive on."""

    __tablename__ = "schools"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default="Active")  # Active | Inactive
    paybill = Column(String(20), nullable=True, unique=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
