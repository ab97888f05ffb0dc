"""
Repository layer: queries and guarded writes over the entity store.

Writes on hot rows (request status, quota counter, check-in flag, payment
status) are conditional updates; callers inspect the returned row count to
detect a lost race.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.orm import Session

from campus_events.models import (
    Event, EventMember, EventRequest, Team, User, Student, Employee, Leaderboard,
)
from campus_events.models.enums import (
    MemberRole, MemberType, PaymentStatus, RequestStatus, UserRole,
)


# -------- User repository --------

class UserRepo:
    @staticmethod
    def get(db: Session, user_id: int, lock: bool = False) -> Optional[User]:
        stmt = select(User).where(User.id == user_id)
        if lock:
            stmt = stmt.with_for_update()
        return db.execute(stmt).scalar_one_or_none()

    @staticmethod
    def get_by_email(db: Session, email: str, lock: bool = False) -> Optional[User]:
        stmt = select(User).where(func.lower(User.email) == email.lower())
        if lock:
            stmt = stmt.with_for_update()
        return db.execute(stmt).scalar_one_or_none()

    @staticmethod
    def list_non_admins(db: Session) -> List[User]:
        stmt = (
            select(User)
            .where(User.role.not_in([UserRole.EVENT_ADMIN, UserRole.ACADEMIC_ADMIN]))
            .order_by(User.created_at.desc(), User.id.desc())
        )
        return list(db.execute(stmt).scalars())

    @staticmethod
    def decrement_quota(db: Session, user_id: int) -> int:
        """Take one unit of event creation quota; returns rows updated (0 or 1)"""
        result = db.execute(
            update(User)
            .where(User.id == user_id, User.event_creation_limit >= 1)
            .values(event_creation_limit=User.event_creation_limit - 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @staticmethod
    def revoke(db: Session, user: User) -> None:
        user.role = UserRole.GUEST
        user.event_creation_limit = 0


# -------- Event request repository --------

class EventRequestRepo:
    @staticmethod
    def get(db: Session, request_id: int, lock: bool = False) -> Optional[EventRequest]:
        stmt = select(EventRequest).where(EventRequest.id == request_id)
        if lock:
            stmt = stmt.with_for_update()
        return db.execute(stmt).scalar_one_or_none()

    @staticmethod
    def transition(db: Session, request_id: int, expected: RequestStatus, target: RequestStatus) -> int:
        """Move a request from ``expected`` to ``target``; returns rows updated"""
        result = db.execute(
            update(EventRequest)
            .where(EventRequest.id == request_id, EventRequest.status == expected)
            .values(status=target)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @staticmethod
    def list_by_status(db: Session, status: RequestStatus) -> List[EventRequest]:
        stmt = (
            select(EventRequest)
            .where(EventRequest.status == status)
            .order_by(EventRequest.created_at.asc(), EventRequest.id.asc())
        )
        return list(db.execute(stmt).scalars())

    @staticmethod
    def list_for_fests(db: Session, fest_ids: Iterable[int], status: RequestStatus) -> List[EventRequest]:
        fest_ids = list(fest_ids)
        if not fest_ids:
            return []
        stmt = (
            select(EventRequest)
            .where(EventRequest.parent_fest_id.in_(fest_ids), EventRequest.status == status)
            .order_by(EventRequest.created_at.asc(), EventRequest.id.asc())
        )
        return list(db.execute(stmt).scalars())

    @staticmethod
    def find_approved_for_fest(db: Session, email: str, fest_id: int) -> Optional[EventRequest]:
        stmt = select(EventRequest).where(
            func.lower(EventRequest.requestor_email) == email.lower(),
            EventRequest.parent_fest_id == fest_id,
            EventRequest.status == RequestStatus.APPROVED,
        )
        return db.execute(stmt).scalars().first()


# -------- Event repository --------

class EventRepo:
    @staticmethod
    def get(db: Session, event_id: int) -> Optional[Event]:
        return db.get(Event, event_id)

    @staticmethod
    def list_fests_owned_by(db: Session, organizer_id: int) -> List[Event]:
        stmt = select(Event).where(Event.organizer_id == organizer_id, Event.parent_id.is_(None))
        return list(db.execute(stmt).scalars())

    @staticmethod
    def list_by_organizer(db: Session, organizer_id: int) -> List[Event]:
        stmt = select(Event).where(Event.organizer_id == organizer_id).order_by(Event.start_time.desc())
        return list(db.execute(stmt).scalars())


# -------- Member and team repository --------

class MemberRepo:
    @staticmethod
    def get(db: Session, member_pk: int, lock: bool = False) -> Optional[EventMember]:
        stmt = select(EventMember).where(EventMember.id == member_pk)
        if lock:
            stmt = stmt.with_for_update()
        return db.execute(stmt).scalar_one_or_none()

    @staticmethod
    def find_participant(db: Session, event_id: int, student_id: str) -> Optional[EventMember]:
        stmt = select(EventMember).where(
            EventMember.event_id == event_id,
            EventMember.member_id == student_id,
            EventMember.member_type == MemberType.STUDENT,
            EventMember.role == MemberRole.PARTICIPANT,
        )
        return db.execute(stmt).scalar_one_or_none()

    @staticmethod
    def find(db: Session, event_id: int, member_id: str, role: MemberRole) -> Optional[EventMember]:
        stmt = select(EventMember).where(
            EventMember.event_id == event_id,
            EventMember.member_id == member_id,
            EventMember.role == role,
        )
        return db.execute(stmt).scalar_one_or_none()

    @staticmethod
    def mark_checked_in(db: Session, member_pk: int) -> int:
        """Flip checked_in false -> true; returns rows updated (0 if already set)"""
        result = db.execute(
            update(EventMember)
            .where(EventMember.id == member_pk, EventMember.checked_in.is_(False))
            .values(checked_in=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @staticmethod
    def list_checked_in_students(db: Session, event_id: int) -> List[EventMember]:
        stmt = select(EventMember).where(
            EventMember.event_id == event_id,
            EventMember.member_type == MemberType.STUDENT,
            EventMember.checked_in.is_(True),
        ).order_by(EventMember.member_id)
        return list(db.execute(stmt).scalars())

    @staticmethod
    def list_student_committee(db: Session, event_id: int) -> List[EventMember]:
        stmt = select(EventMember).where(
            EventMember.event_id == event_id,
            EventMember.member_type == MemberType.STUDENT,
            EventMember.role.in_([MemberRole.STUDENT_ORGANISER, MemberRole.COMMITTEE_MEMBER]),
        ).order_by(EventMember.member_id)
        return list(db.execute(stmt).scalars())

    @staticmethod
    def list_by_roles(db: Session, event_id: int, roles: Iterable[MemberRole]) -> List[EventMember]:
        stmt = select(EventMember).where(
            EventMember.event_id == event_id,
            EventMember.role.in_(list(roles)),
        ).order_by(EventMember.role, EventMember.member_id)
        return list(db.execute(stmt).scalars())

    @staticmethod
    def list_pending_individuals(db: Session, event_id: int) -> List[EventMember]:
        stmt = select(EventMember).where(
            EventMember.event_id == event_id,
            EventMember.team_id.is_(None),
            EventMember.role == MemberRole.PARTICIPANT,
            EventMember.payment_status == PaymentStatus.PENDING,
        ).order_by(EventMember.id)
        return list(db.execute(stmt).scalars())


class TeamRepo:
    @staticmethod
    def get(db: Session, team_id: int, lock: bool = False) -> Optional[Team]:
        stmt = select(Team).where(Team.id == team_id)
        if lock:
            stmt = stmt.with_for_update()
        return db.execute(stmt).scalar_one_or_none()

    @staticmethod
    def list_pending(db: Session, event_id: int) -> List[Team]:
        stmt = select(Team).where(
            Team.event_id == event_id,
            Team.payment_status == PaymentStatus.PENDING,
        ).order_by(Team.id)
        return list(db.execute(stmt).scalars())


# -------- People and leaderboard --------

class PeopleRepo:
    @staticmethod
    def students_by_ids(db: Session, student_ids: Iterable[str]) -> dict[str, Student]:
        ids = list(set(student_ids))
        if not ids:
            return {}
        rows = db.execute(select(Student).where(Student.student_id.in_(ids))).scalars()
        return {s.student_id: s for s in rows}

    @staticmethod
    def employees_by_ids(db: Session, employee_ids: Iterable[str]) -> dict[str, Employee]:
        ids = list(set(employee_ids))
        if not ids:
            return {}
        rows = db.execute(select(Employee).where(Employee.employee_id.in_(ids))).scalars()
        return {e.employee_id: e for e in rows}


class LeaderboardRepo:
    @staticmethod
    def list_for_event(db: Session, event_id: int) -> List[Leaderboard]:
        stmt = (
            select(Leaderboard)
            .where(Leaderboard.event_id == event_id)
            .order_by(Leaderboard.rank.asc().nulls_last(), Leaderboard.competitor_id)
        )
        return list(db.execute(stmt).scalars())
