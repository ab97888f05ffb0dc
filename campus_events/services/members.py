"""
Resolution of polymorphic event member references.

An EventMember points at either a Student or an Employee through the
``(member_id, member_type)`` pair. ``member_ref`` turns that pair into a
tagged reference and ``resolve_member`` loads the row it names.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy.orm import Session

from campus_events.models import Employee, EventMember, Student
from campus_events.models.enums import MemberType


@dataclass(frozen=True)
class StudentRef:
    student_id: str


@dataclass(frozen=True)
class EmployeeRef:
    employee_id: str


MemberRef = Union[StudentRef, EmployeeRef]


def member_ref(member: EventMember) -> MemberRef:
    if member.member_type == MemberType.STUDENT:
        return StudentRef(member.member_id)
    if member.member_type == MemberType.EMPLOYEE:
        return EmployeeRef(member.member_id)
    raise ValueError(f"Unknown member type: {member.member_type!r}")


def resolve_member(db: Session, member: EventMember) -> Optional[Union[Student, Employee]]:
    ref = member_ref(member)
    if isinstance(ref, StudentRef):
        return db.get(Student, ref.student_id)
    return db.get(Employee, ref.employee_id)


def describe_member(db: Session, member: EventMember) -> dict:
    """Serializable view of a member together with the person it references"""
    person = resolve_member(db, member)
    data = {
        "id": member.id,
        "member_id": member.member_id,
        "member_type": member.member_type.value,
        "role": member.role.value,
        "name": None,
        "email": None,
    }
    if person is not None:
        data["name"] = person.name
        data["email"] = person.email
    return data
