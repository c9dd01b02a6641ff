from schoolledger.core.models.tenant import School
from schoolledger.core.models.class_model import SchoolClass
from schoolledger.core.models.student import Student
from schoolledger.core.models.teacher import Teacher
from schoolledger.core.models.fee_head import FeeHead
from schoolledger.core.models.fee_structure import FeeStructure
from schoolledger.core.models.fee_payment import FeePayment, FeePaymentItem
from schoolledger.core.models.fee_audit_log import FeeAuditLog
from schoolledger.core.models.student_attendance import StudentAttendance
from schoolledger.core.models.exam import Exam
from schoolledger.core.models.grade import Grade

__all__ = [
    "School",
    "SchoolClass",
    "Student",
    "Teacher",
    "FeeHead",
    "FeeStructure",
    "FeePayment",
    "FeePaymentItem",
    "FeeAuditLog",
    "StudentAttendance",
    "Exam",
    "Grade",
]
