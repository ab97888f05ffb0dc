"""
Enumerations shared by models, schemas and services
"""

import enum

from sqlalchemy import Enum


class UserRole(str, enum.Enum):
    EVENT_ADMIN = "EventAdmin"
    ACADEMIC_ADMIN = "AcademicAdmin"
    ORGANIZER = "Organizer"
    SUB_ORGANIZER = "SubOrganizer"
    GUEST = "Guest"


class RequestScope(str, enum.Enum):
    STANDALONE = "Standalone"
    PART_OF_FEST = "Part of Fest"


class RequestStatus(str, enum.Enum):
    SUBMITTED = "Submitted"
    PENDING_ADMIN = "Pending_Admin"
    PENDING_MAIN_ORGANIZER = "Pending_Main_Organizer"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class RegistrationType(str, enum.Enum):
    INDIVIDUAL = "Individual"
    TEAM = "Team"


class PaymentStatus(str, enum.Enum):
    NOT_APPLICABLE = "N/A"
    PENDING = "Pending"
    VERIFIED = "Verified"


class MemberType(str, enum.Enum):
    STUDENT = "Student"
    EMPLOYEE = "Employee"


class MemberRole(str, enum.Enum):
    PARTICIPANT = "Participant"
    COMMITTEE_MEMBER = "Committee Member"
    STUDENT_ORGANISER = "Student Organiser"
    EMPLOYEE_ORGANISER = "Employee Organiser"


ORGANIZING_ROLES = (
    MemberRole.COMMITTEE_MEMBER,
    MemberRole.STUDENT_ORGANISER,
    MemberRole.EMPLOYEE_ORGANISER,
)


class CompetitorType(str, enum.Enum):
    TEAM = "Team"
    INDIVIDUAL = "Individual"


class RequirementStatus(str, enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


def enum_type(enum_cls):
    """String-backed enum column storing the member values"""
    return Enum(
        enum_cls,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )
