from enum import Enum


class UserRole(str, Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    CLASS_TEACHER = "classteacher"
    ACCOUNTS = "accounts"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class SchoolStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class PaymentMethod(str, Enum):
    CASH = "cash"
    MPESA = "mpesa"
    BANK = "bank"
    CHEQUE = "cheque"
    REVERSAL = "reversal"


class Term(str, Enum):
    TERM_1 = "Term 1"
    TERM_2 = "Term 2"
    TERM_3 = "Term 3"


class EnrollmentStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    TRANSFERRED = "transferred"


class IngestStatus(str, Enum):
    RECORDED = "recorded"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    SCHOOL_NOT_FOUND = "school_not_found"
    STUDENT_NOT_FOUND = "student_not_found"
    FAILED = "failed"


def term_for_month(month: int) -> Term:
    """Calendar term for a month: Jan-Apr Term 1, May-Aug Term 2, Sep-Dec Term 3."""
    if not 1 <= month <= 12:
        raise ValueError(f"month out of range: {month}")
    if month <= 4:
        return Term.TERM_1
    if month <= 8:
        return Term.TERM_2
    return Term.TERM_3
