"""
Event creation against quota, updates, deletion and listings
"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, aliased, selectinload

from campus_events.core.db import atomic
from campus_events.core.deadline import Deadline
from campus_events.core.errors import Forbidden, NotFound, QuotaExceeded, ValidationFailed
from campus_events.models import Club, Event, User
from campus_events.models.enums import UserRole
from campus_events.schemas.event import EventCreate, EventUpdate
from campus_events.services.repositories import EventRepo, EventRequestRepo, UserRepo
from campus_events.utils.uploads import discard

logger = logging.getLogger(__name__)

CREATOR_ROLES = (UserRole.ORGANIZER, UserRole.SUB_ORGANIZER)


def ensure_can_manage(event: Event, actor: User, allow_admin: bool = True) -> None:
    """Owner always; EventAdmin when ``allow_admin``"""
    if event.organizer_id == actor.id:
        return
    if allow_admin and actor.role == UserRole.EVENT_ADMIN:
        return
    raise Forbidden("You are not allowed to manage this event.")


def get_event_or_404(db: Session, event_id: int) -> Event:
    event = EventRepo.get(db, event_id)
    if event is None:
        raise NotFound.of("Event")
    return event


class EventService:
    """Service for event lifecycle operations"""

    @staticmethod
    def create_event(
        db: Session,
        organizer: User,
        data: EventCreate,
        banner_url: Optional[str] = None,
        payment_qr_codes: Sequence[str] = (),
        deadline: Optional[Deadline] = None,
    ) -> Event:
        """Create an event and consume one unit of the organizer's quota.

        The insert and the quota decrement commit together. The decrement is
        conditional on the counter still being positive, so concurrent
        creations cannot overdraw the quota.
        """
        if organizer.role not in CREATOR_ROLES:
            raise Forbidden("Only organizers can create events.")
        if organizer.event_creation_limit <= 0:
            raise QuotaExceeded()

        if data.club_id and db.get(Club, data.club_id) is None:
            raise NotFound.of("Club")
        EventService._check_parent(db, organizer, data)

        event = Event(
            event_name=data.event_name,
            event_desc=data.event_desc,
            start_time=data.start_time,
            end_time=data.end_time,
            venue=data.venue,
            organizer_id=organizer.id,
            club_id=data.club_id,
            parent_id=data.parent_id,
            registration_type=data.registration_type,
            is_paid_event=data.is_paid_event,
            has_leaderboard=data.has_leaderboard,
            show_leaderboard_marks=data.show_leaderboard_marks,
            registration_locked=data.registration_locked,
            registration_schema=[f.model_dump() for f in data.registration_schema],
            payment_qr_codes=list(payment_qr_codes),
            banner_url=banner_url,
            contact_details=data.contact_details,
        )

        with atomic(db, deadline):
            db.add(event)
            db.flush()
            if UserRepo.decrement_quota(db, organizer.id) != 1:
                raise QuotaExceeded()

        db.refresh(event)
        db.refresh(organizer)
        logger.info(
            "Event %s created by %s; remaining quota %s",
            event.id, organizer.email, organizer.event_creation_limit,
        )
        return event

    @staticmethod
    def _check_parent(db: Session, organizer: User, data: EventCreate) -> None:
        if data.parent_id is None:
            if organizer.role == UserRole.SUB_ORGANIZER:
                raise ValidationFailed("Sub-organizers can only create events inside their fest.")
            return

        parent = EventRepo.get(db, data.parent_id)
        if parent is None:
            raise NotFound.of("Parent event")
        if parent.parent_id is not None:
            raise ValidationFailed("Sub-events cannot be nested.")
        if data.start_time < parent.start_time or data.end_time > parent.end_time:
            raise ValidationFailed("A sub-event must take place within its fest's schedule.")

        if organizer.role == UserRole.ORGANIZER:
            if parent.organizer_id != organizer.id:
                raise Forbidden("You can only add sub-events to fests you organize.")
        elif EventRequestRepo.find_approved_for_fest(db, organizer.email, parent.id) is None:
            raise Forbidden("Your request for this fest has not been approved by its main organizer.")

    @staticmethod
    def update_event(
        db: Session,
        actor: User,
        event_id: int,
        data: EventUpdate,
        banner_url: Optional[str] = None,
        payment_qr_codes: Optional[Sequence[str]] = None,
        deadline: Optional[Deadline] = None,
    ) -> Event:
        event = get_event_or_404(db, event_id)
        ensure_can_manage(event, actor, allow_admin=False)

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        start = changes.get("start_time", event.start_time)
        end = changes.get("end_time", event.end_time)
        if end <= start:
            raise ValidationFailed("End time must be after start time.")
        if event.parent is not None and (start < event.parent.start_time or end > event.parent.end_time):
            raise ValidationFailed("A sub-event must take place within its fest's schedule.")
        for child in event.sub_events:
            if child.start_time < start or child.end_time > end:
                raise ValidationFailed(f"Sub-event {child.event_name!r} would fall outside the fest's schedule.")
        if changes.get("club_id") and db.get(Club, changes["club_id"]) is None:
            raise NotFound.of("Club")

        replaced = []
        with atomic(db, deadline):
            for field, value in changes.items():
                setattr(event, field, value)
            if banner_url:
                replaced.append(event.banner_url)
                event.banner_url = banner_url
            if payment_qr_codes:
                replaced.extend(event.payment_qr_codes or [])
                event.payment_qr_codes = list(payment_qr_codes)

        discard(replaced)
        db.refresh(event)
        logger.info("Event %s updated by %s", event.id, actor.email)
        return event

    @staticmethod
    def delete_event(db: Session, actor: User, event_id: int, deadline: Optional[Deadline] = None) -> None:
        """Delete an event; sub-events, teams, members and scores go with it"""
        event = get_event_or_404(db, event_id)
        ensure_can_manage(event, actor)
        files = [
            path
            for e in [event, *event.sub_events]
            for path in [e.banner_url, *(e.payment_qr_codes or [])]
        ]
        with atomic(db, deadline):
            db.delete(event)
        discard(files)
        logger.info("Event %s deleted by %s", event_id, actor.email)

    @staticmethod
    def list_events(db: Session, kind: Optional[str] = None, include_past: bool = False, now: Optional[datetime] = None) -> List[Event]:
        now = now or datetime.now()
        stmt = select(Event).order_by(Event.start_time.asc(), Event.id.asc())
        if not include_past:
            stmt = stmt.where(Event.end_time >= now)
        if kind == "fest":
            child = aliased(Event)
            stmt = stmt.where(
                Event.parent_id.is_(None),
                select(child.id).where(child.parent_id == Event.id).exists(),
            )
        return list(db.execute(stmt).scalars())

    @staticmethod
    def get_event(db: Session, event_id: int) -> Event:
        stmt = select(Event).where(Event.id == event_id).options(selectinload(Event.sub_events))
        event = db.execute(stmt).scalar_one_or_none()
        if event is None:
            raise NotFound.of("Event")
        return event

    @staticmethod
    def list_my_events(db: Session, actor: User) -> List[Event]:
        return EventRepo.list_by_organizer(db, actor.id)
