"""
Participant check-in guarded by registration and payment rules
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from campus_events.core.db import atomic
from campus_events.core.deadline import Deadline
from campus_events.core.errors import AlreadyCheckedIn, NotFound, NotRegistered, PaymentNotVerified
from campus_events.models import EventMember, User
from campus_events.models.enums import PaymentStatus
from campus_events.services.event_service import ensure_can_manage
from campus_events.services.repositories import EventRepo, MemberRepo, TeamRepo

logger = logging.getLogger(__name__)

class CheckInService:
    """Service for checking participants in at the event entrance"""

    @staticmethod
    def check_in(
        db: Session,
        event_id: int,
        student_id: str,
        actor: User,
        deadline: Optional[Deadline] = None,
    ) -> EventMember:
        """Check a registered student in.

        Checks run in order and each one stops the operation: event exists,
        caller owns it (or is an EventAdmin), the student is a registered
        participant, not yet checked in, and for paid events the team's or
        the student's own payment is verified. ``checked_in`` only ever goes
        from false to true.
        """
        event = EventRepo.get(db, event_id)
        if event is None:
            raise NotFound.of("Event")
        ensure_can_manage(event, actor)

        member = MemberRepo.find_participant(db, event_id, student_id)
        if member is None:
            raise NotRegistered()
        if member.checked_in:
            raise AlreadyCheckedIn()

        if event.is_paid_event:
            if member.team_id is not None:
                team = TeamRepo.get(db, member.team_id, lock=True)
                if team is None or team.payment_status != PaymentStatus.VERIFIED:
                    raise PaymentNotVerified("The team's payment has not been verified.")
            elif member.payment_status != PaymentStatus.VERIFIED:
                raise PaymentNotVerified()

        with atomic(db, deadline):
            if MemberRepo.mark_checked_in(db, member.id) != 1:
                raise AlreadyCheckedIn()

        db.refresh(member)
        logger.info("Student %s checked in to event %s by %s", student_id, event_id, actor.email)
        return member
