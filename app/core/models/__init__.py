from app.core.models.school import School
from app.core.models.student_enrollment import StudentEnrollment
from app.core.models.fee_structure import FeeStructure
from app.core.models.payment_entry import PaymentEntry
from app.core.models.payment_reversal import PaymentReversal

__all__ = [
    "School",
    "StudentEnrollment",
    "FeeStructure",
    "PaymentEntry",
    "PaymentReversal",
]
