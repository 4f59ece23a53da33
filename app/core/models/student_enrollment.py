import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, Uuid

from app.db.session import Base, utcnow


class StudentEnrollment(Base):
    """Grade/stream a student sits in for one academic year."""

    __tablename__ = "student_enrollments"
    __table_args__ = (
        UniqueConstraint("student_id", "academic_year", name="uq_student_enrollment_student_year"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    school_id = Column(Uuid, ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    academic_year = Column(Integer, nullable=False, index=True)
    grade = Column(String(50), nullable=False)  # e.g. "Grade 3"
    stream = Column(String(20), nullable=True)  # e.g. "W", "E"
    term = Column(String(10), nullable=False, default="Term 1")
    status = Column(String(20), nullable=False, default="active")  # active | completed | transferred
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
