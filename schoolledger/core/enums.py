from enum import Enum


class InstitutionType(str, Enum):
    SCHOOL = "School"
    SCHOOL_AND_COLLEGE = "School & College"
    COLLEGE = "College"
    COACHING = "Coaching Center"
    OTHER = "Other"


class UserRole(str, Enum):
    ADMIN = "Admin"
    TEACHER = "Teacher"
    ACCOUNTANT = "Accountant"
    PARENT = "Parent"
    STUDENT = "Student"
    SUPER_ADMIN = "SuperAdmin"


class AttendanceStatus(str, Enum):
    PRESENT = "Present"
    ABSENT = "Absent"
    LATE = "Late"
    LEAVE = "Leave"


class FeeStatus(str, Enum):
    paid = "paid"
    partial = "partial"
    unpaid = "unpaid"
    not_applicable = "not-applicable"
