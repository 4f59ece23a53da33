import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid

from app.db.session import Base, utcnow


class User(Base):
    """Portal user within a school: students, staff, and per-school system actors."""

    __tablename__ = "users"
    __table_args__ = (
        # Admission numbers are unique per school
        UniqueConstraint("school_id", "admission", name="uq_user_school_admission"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    # Owning school; null only for super admins
    school_id = Column(Uuid, ForeignKey("schools.id"), nullable=True, index=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True, unique=True)
    # student, teacher, classteacher, accounts, admin, super_admin
    role = Column(String(50), nullable=False)
    admission = Column(String(50), nullable=True)
    password_hash = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="ACTIVE")
    # Non-human actor that records gateway-originated payments. Cannot log in.
    is_system = Column(Boolean, nullable=False, default=False)
    # e.g. "mpesa:<school_id>"; unique so concurrent creation yields one row
    system_key = Column(String(100), nullable=True, unique=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
