"""Lookups over schools, students and enrollments used by the fee services."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.core.enums import EnrollmentStatus, SchoolStatus, UserRole
from app.core.exceptions import NotFoundError
from app.core.models import School, StudentEnrollment


async def find_student_by_admission(
    db: AsyncSession, school_id: UUID, admission: str
) -> Optional[User]:
    result = await db.execute(
        select(User).where(
            User.school_id == school_id,
            User.admission == admission,
            User.role == UserRole.STUDENT.value,
        )
    )
    return result.scalar_one_or_none()


async def get_student_by_admission(db: AsyncSession, school_id: UUID, admission: str) -> User:
    student = await find_student_by_admission(db, school_id, admission)
    if not student:
        raise NotFoundError("Student not found")
    return student


async def find_active_school_by_paybill(db: AsyncSession, paybill: str) -> Optional[School]:
    result = await db.execute(
        select(School).where(
            School.paybill == paybill,
            School.status == SchoolStatus.ACTIVE.value,
        )
    )
    return result.scalar_one_or_none()


async def get_school(db: AsyncSession, school_id: UUID) -> School:
    school = await db.get(School, school_id)
    if not school:
        raise NotFoundError("School not found")
    return school


async def find_enrollment(
    db: AsyncSession, student_id: UUID, academic_year: int
) -> Optional[StudentEnrollment]:
    """Active enrollment for the year, else the student's most recent enrollment."""
    exact = (
        await db.execute(
            select(StudentEnrollment).where(
                StudentEnrollment.student_id == student_id,
                StudentEnrollment.academic_year == academic_year,
                StudentEnrollment.status == EnrollmentStatus.ACTIVE.value,
            )
        )
    ).scalar_one_or_none()
    if exact:
        return exact
    latest = await db.execute(
        select(StudentEnrollment)
        .where(StudentEnrollment.student_id == student_id)
        .order_by(StudentEnrollment.academic_year.desc())
        .limit(1)
    )
    return latest.scalar_one_or_none()


async def resolve_grade(db: AsyncSession, student_id: UUID, academic_year: int) -> Optional[str]:
    enrollment = await find_enrollment(db, student_id, academic_year)
    return enrollment.grade if enrollment else None
