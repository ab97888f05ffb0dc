"""
Organizer tooling: payment verification, organizing team and leaderboard
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from campus_events.core.db import atomic
from campus_events.core.deadline import Deadline
from campus_events.core.errors import Conflict, InvalidState, NotFound, ValidationFailed
from campus_events.models import Employee, EventMember, Leaderboard, Student, Team, User
from campus_events.models.enums import (
    ORGANIZING_ROLES, CompetitorType, MemberRole, MemberType, PaymentStatus,
)
from campus_events.schemas.event import LeaderboardUpdate
from campus_events.schemas.organizer import TeamMemberCreate
from campus_events.services.event_service import ensure_can_manage, get_event_or_404
from campus_events.services.mailer import MailDescriptor, MailKind
from campus_events.services.members import describe_member
from campus_events.services.repositories import LeaderboardRepo, MemberRepo, PeopleRepo, TeamRepo

logger = logging.getLogger(__name__)

TEAM = "Team"
INDIVIDUAL = "Individual"


def competition_ranks(marks: Sequence[float]) -> List[int]:
    """Standard competition ranking by marks descending: 1, 2, 2, 4"""
    ordered = sorted(marks, reverse=True)
    first_seen: Dict[float, int] = {}
    for position, value in enumerate(ordered, start=1):
        first_seen.setdefault(value, position)
    return [first_seen[value] for value in marks]


class OrganizerService:
    """Service for event-owner operations after registration"""

    # -------- Payments --------

    @staticmethod
    def pending_verifications(db: Session, actor: User, event_id: int) -> Tuple[List[Team], List[EventMember]]:
        event = get_event_or_404(db, event_id)
        ensure_can_manage(event, actor)
        return TeamRepo.list_pending(db, event_id), MemberRepo.list_pending_individuals(db, event_id)

    @staticmethod
    def _load_payment_record(db: Session, kind: str, record_id: int):
        if kind == TEAM:
            record = TeamRepo.get(db, record_id, lock=True)
        elif kind == INDIVIDUAL:
            record = MemberRepo.get(db, record_id, lock=True)
            if record is not None and (record.team_id is not None or record.role != MemberRole.PARTICIPANT):
                record = None
        else:
            raise ValidationFailed(f"Unknown payment record type: {kind}")
        if record is None:
            raise NotFound.of(f"{kind} registration")
        return record

    @staticmethod
    def verify_payment(db: Session, actor: User, kind: str, record_id: int, deadline: Optional[Deadline] = None):
        """Mark a team's or an individual's payment as verified.

        Verifying a team also marks each of its members verified. Verifying
        twice is a no-op.
        """
        with atomic(db, deadline):
            record = OrganizerService._load_payment_record(db, kind, record_id)
            ensure_can_manage(record.event, actor)
            if record.payment_status == PaymentStatus.NOT_APPLICABLE:
                raise InvalidState("This registration has no payment to verify.")
            record.payment_status = PaymentStatus.VERIFIED
            if kind == TEAM:
                for member in record.members:
                    member.payment_status = PaymentStatus.VERIFIED

        logger.info("%s payment %s verified by %s", kind, record_id, actor.email)
        return record

    @staticmethod
    def reject_payment(
        db: Session,
        actor: User,
        kind: str,
        record_id: int,
        reason: Optional[str] = None,
        deadline: Optional[Deadline] = None,
    ) -> Optional[MailDescriptor]:
        """Reject a payment by deleting the registration.

        Returns the PaymentRejected notice for the team leader or the student,
        or None when no address is on record.
        """
        with atomic(db, deadline):
            record = OrganizerService._load_payment_record(db, kind, record_id)
            event = record.event
            ensure_can_manage(event, actor)

            if kind == TEAM:
                student_id = record.team_leader_student_id
                audit = f"team {record.id} {record.team_name!r} (leader {student_id}, txn {record.transaction_id})"
            else:
                student_id = record.member_id
                audit = f"registration {record.id} of student {student_id} (txn {record.transaction_id})"
            student = db.get(Student, student_id)
            db.delete(record)

        logger.warning(
            "AUDIT payment rejected for event %s by %s: %s; reason: %s",
            event.id, actor.email, audit, reason or "-",
        )
        if student is None or not student.email:
            return None
        return MailDescriptor(
            kind=MailKind.PAYMENT_REJECTED,
            recipient=student.email,
            context={"event_name": event.event_name, "reason": reason},
        )

    # -------- Organizing team --------

    @staticmethod
    def list_team(db: Session, actor: User, event_id: int) -> List[dict]:
        event = get_event_or_404(db, event_id)
        ensure_can_manage(event, actor, allow_admin=False)
        return [describe_member(db, m) for m in MemberRepo.list_by_roles(db, event_id, ORGANIZING_ROLES)]

    @staticmethod
    def add_team_member(db: Session, actor: User, event_id: int, data: TeamMemberCreate, deadline: Optional[Deadline] = None) -> EventMember:
        event = get_event_or_404(db, event_id)
        ensure_can_manage(event, actor, allow_admin=False)

        if data.role not in ORGANIZING_ROLES:
            raise ValidationFailed(f"{data.role.value} is not an organizing role.")
        expected_type = MemberType.EMPLOYEE if data.role == MemberRole.EMPLOYEE_ORGANISER else MemberType.STUDENT
        if data.member_type != expected_type:
            raise ValidationFailed(f"{data.role.value} must be a {expected_type.value}.")

        person_cls = Employee if expected_type == MemberType.EMPLOYEE else Student
        if db.get(person_cls, data.member_id) is None:
            raise NotFound.of(expected_type.value)
        if MemberRepo.find(db, event_id, data.member_id, data.role) is not None:
            raise Conflict(f"{data.member_id} is already a {data.role.value} of this event.")

        member = EventMember(
            event_id=event_id,
            member_id=data.member_id,
            member_type=data.member_type,
            role=data.role,
        )
        try:
            with atomic(db, deadline):
                db.add(member)
        except IntegrityError:
            raise Conflict(f"{data.member_id} is already a {data.role.value} of this event.")

        db.refresh(member)
        logger.info("%s %s added to event %s", data.role.value, data.member_id, event_id)
        return member

    @staticmethod
    def remove_team_member(db: Session, actor: User, event_id: int, member_pk: int, deadline: Optional[Deadline] = None) -> None:
        event = get_event_or_404(db, event_id)
        ensure_can_manage(event, actor, allow_admin=False)

        member = MemberRepo.get(db, member_pk)
        if member is None or member.event_id != event_id or member.role not in ORGANIZING_ROLES:
            raise NotFound.of("Team member")
        with atomic(db, deadline):
            db.delete(member)
        logger.info("%s %s removed from event %s", member.role.value, member.member_id, event_id)

    # -------- Leaderboard --------

    @staticmethod
    def update_leaderboard(db: Session, actor: User, event_id: int, data: LeaderboardUpdate, deadline: Optional[Deadline] = None) -> List[Leaderboard]:
        """Upsert scores and recompute every rank of the event's board"""
        event = get_event_or_404(db, event_id)
        ensure_can_manage(event, actor, allow_admin=False)
        if not event.has_leaderboard:
            raise InvalidState("This event does not have a leaderboard.")

        with atomic(db, deadline):
            existing = {
                (row.competitor_id, row.competitor_type): row
                for row in LeaderboardRepo.list_for_event(db, event_id)
            }
            for score in data.scores:
                key = (score.competitor_id, score.competitor_type)
                row = existing.get(key)
                if row is None:
                    row = existing[key] = Leaderboard(
                        event_id=event_id,
                        competitor_id=score.competitor_id,
                        competitor_type=score.competitor_type,
                    )
                    db.add(row)
                row.marks = score.marks

            rows = list(existing.values())
            for row, rank in zip(rows, competition_ranks([r.marks for r in rows])):
                row.rank = rank
            event.show_leaderboard_marks = data.show_marks

        logger.info("Leaderboard of event %s updated with %d scores", event_id, len(data.scores))
        return LeaderboardRepo.list_for_event(db, event_id)

    @staticmethod
    def get_leaderboard(db: Session, event_id: int) -> List[dict]:
        event = get_event_or_404(db, event_id)
        rows = LeaderboardRepo.list_for_event(db, event_id)

        team_ids = [int(r.competitor_id) for r in rows if r.competitor_type == CompetitorType.TEAM and r.competitor_id.isdigit()]
        teams = {}
        if team_ids:
            teams = {str(t.id): t.team_name for t in db.execute(select(Team).where(Team.id.in_(team_ids))).scalars()}
        students = PeopleRepo.students_by_ids(
            db, [r.competitor_id for r in rows if r.competitor_type == CompetitorType.INDIVIDUAL]
        )

        board = []
        for row in rows:
            if row.competitor_type == CompetitorType.TEAM:
                name = teams.get(row.competitor_id)
            else:
                student = students.get(row.competitor_id)
                name = student.name if student else None
            board.append({
                "competitor_id": row.competitor_id,
                "competitor_type": row.competitor_type,
                "competitor_name": name,
                "marks": row.marks if event.show_leaderboard_marks else None,
                "rank": row.rank,
            })
        return board
