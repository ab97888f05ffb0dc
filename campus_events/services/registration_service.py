"""
Public participant registration for individual and team events
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from campus_events.core.db import atomic
from campus_events.core.deadline import Deadline
from campus_events.core.errors import Conflict, NotFound, ValidationFailed
from campus_events.models import Event, EventMember, Team
from campus_events.models.enums import MemberRole, MemberType, PaymentStatus, RegistrationType
from campus_events.schemas.event import RegistrationCreate
from campus_events.services.event_service import get_event_or_404
from campus_events.services.repositories import MemberRepo, PeopleRepo

logger = logging.getLogger(__name__)


def validate_answers(schema: List[Dict[str, Any]], answers: Dict[str, Any]) -> Dict[str, Any]:
    """Check answers against the event's custom registration fields.

    Unknown keys are dropped. Required fields must be present and non-empty;
    select fields must use one of their options.
    """
    cleaned = {}
    errors = []
    for field in schema or []:
        name = field.get("name")
        value = answers.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            if field.get("required"):
                errors.append(f"{field.get('label') or name} is required")
            continue
        if field.get("type") == "select" and field.get("options") and value not in field["options"]:
            errors.append(f"{field.get('label') or name} must be one of: {', '.join(field['options'])}")
            continue
        if field.get("type") == "number":
            try:
                value = float(value)
            except (TypeError, ValueError):
                errors.append(f"{field.get('label') or name} must be a number")
                continue
        cleaned[name] = value
    if errors:
        raise ValidationFailed("Invalid registration details", details={"fields": errors})
    return cleaned


class RegistrationService:
    """Service for registering students to events"""

    @staticmethod
    def register(
        db: Session,
        event_id: int,
        data: RegistrationCreate,
        screenshot_path: Optional[str] = None,
        deadline: Optional[Deadline] = None,
    ):
        """Register a student, or a team of students, as participants.

        Returns the created Team for team events and the EventMember
        otherwise.
        """
        event = get_event_or_404(db, event_id)
        if event.registration_locked:
            raise Conflict("Registrations for this event are closed.")

        answers = validate_answers(event.registration_schema, data.answers)

        if event.is_paid_event:
            if not data.transaction_id or not data.transaction_id.strip():
                raise ValidationFailed("A transaction ID is required for paid events.")
            payment_status = PaymentStatus.PENDING
        else:
            payment_status = PaymentStatus.NOT_APPLICABLE

        if event.registration_type == RegistrationType.TEAM:
            return RegistrationService._register_team(db, event, data, answers, payment_status, screenshot_path, deadline)
        return RegistrationService._register_individual(db, event, data, answers, payment_status, screenshot_path, deadline)

    @staticmethod
    def _check_students(db: Session, event: Event, student_ids: List[str]) -> None:
        found = PeopleRepo.students_by_ids(db, student_ids)
        missing = [sid for sid in student_ids if sid not in found]
        if missing:
            raise NotFound(f"Student not found: {', '.join(missing)}")
        for sid in student_ids:
            if MemberRepo.find_participant(db, event.id, sid) is not None:
                raise Conflict(f"Student {sid} is already registered for this event.")

    @staticmethod
    def _register_individual(db, event, data, answers, payment_status, screenshot_path, deadline) -> EventMember:
        if not data.student_id:
            raise ValidationFailed("studentId is required.")
        RegistrationService._check_students(db, event, [data.student_id])

        member = EventMember(
            event_id=event.id,
            member_id=data.student_id,
            member_type=MemberType.STUDENT,
            role=MemberRole.PARTICIPANT,
            payment_status=payment_status,
            transaction_id=data.transaction_id if event.is_paid_event else None,
            payment_screenshot_path=screenshot_path if event.is_paid_event else None,
            registration_data=answers,
        )
        try:
            with atomic(db, deadline):
                db.add(member)
        except IntegrityError:
            raise Conflict(f"Student {data.student_id} is already registered for this event.")

        db.refresh(member)
        logger.info("Student %s registered for event %s", data.student_id, event.id)
        return member

    @staticmethod
    def _register_team(db, event, data, answers, payment_status, screenshot_path, deadline) -> Team:
        if not data.team_name or not data.team_name.strip():
            raise ValidationFailed("teamName is required for team events.")
        if not data.leader_student_id:
            raise ValidationFailed("leaderStudentId is required for team events.")

        student_ids = [data.leader_student_id]
        for sid in data.member_student_ids:
            if sid and sid not in student_ids:
                student_ids.append(sid)
        RegistrationService._check_students(db, event, student_ids)

        team = Team(
            event_id=event.id,
            team_name=data.team_name.strip(),
            team_leader_student_id=data.leader_student_id,
            payment_status=payment_status,
            transaction_id=data.transaction_id if event.is_paid_event else None,
            payment_screenshot_path=screenshot_path if event.is_paid_event else None,
        )
        try:
            with atomic(db, deadline):
                db.add(team)
                db.flush()
                for sid in student_ids:
                    db.add(EventMember(
                        event_id=event.id,
                        member_id=sid,
                        member_type=MemberType.STUDENT,
                        role=MemberRole.PARTICIPANT,
                        team_id=team.id,
                        payment_status=payment_status,
                        registration_data=answers if sid == data.leader_student_id else {},
                    ))
        except IntegrityError:
            raise Conflict("This team name is taken or a member is already registered.")

        db.refresh(team)
        logger.info("Team %r registered for event %s with %d members", team.team_name, event.id, len(student_ids))
        return team
