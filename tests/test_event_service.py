"""
Tests for event creation against quota and sub-event rules
"""

from datetime import date, datetime

import pytest

from campus_events.core.errors import Forbidden, QuotaExceeded, ValidationFailed
from campus_events.models import Event, EventRequest
from campus_events.models.enums import RequestScope, RequestStatus, UserRole
from campus_events.schemas.event import EventCreate, EventUpdate
from campus_events.services.event_service import EventService
from campus_events.services.repositories import UserRepo


def event_data(**overrides):
    values = dict(
        event_name="Robotics Workshop",
        start_time=datetime(2030, 2, 1, 10, 0),
        end_time=datetime(2030, 2, 1, 13, 0),
        venue="Lab 2",
        contact_details={"email": "robotics@campus.edu"},
    )
    values.update(overrides)
    return EventCreate(**values)


def test_create_event_consumes_quota(db_session, make_user):
    organizer = make_user("org@campus.edu", limit=2)

    event = EventService.create_event(db_session, organizer, event_data(), banner_url="/uploads/banner.png")

    assert event.id is not None
    assert event.banner_url == "/uploads/banner.png"
    assert organizer.event_creation_limit == 1


def test_create_event_without_quota_is_rejected(db_session, make_user):
    organizer = make_user("org@campus.edu", limit=0)

    with pytest.raises(QuotaExceeded):
        EventService.create_event(db_session, organizer, event_data())
    assert db_session.query(Event).count() == 0


def test_guests_cannot_create_events(db_session, make_user):
    guest = make_user("guest@campus.edu", role=UserRole.GUEST, limit=5)

    with pytest.raises(Forbidden):
        EventService.create_event(db_session, guest, event_data())


def test_quota_race_creates_exactly_one_event(db_session, other_session, make_user):
    organizer = make_user("org@campus.edu", limit=1)
    # both requests read the organizer while one unit of quota is left
    stale = UserRepo.get(other_session, organizer.id)
    assert stale.event_creation_limit == 1

    EventService.create_event(db_session, organizer, event_data(event_name="First"))

    with pytest.raises(QuotaExceeded):
        EventService.create_event(other_session, stale, event_data(event_name="Second"))

    db_session.expire_all()
    assert db_session.query(Event).count() == 1
    assert UserRepo.get(db_session, organizer.id).event_creation_limit == 0


def test_event_window_must_be_ordered():
    with pytest.raises(ValueError):
        event_data(end_time=datetime(2030, 2, 1, 9, 0))


def test_sub_event_must_fit_inside_parent(db_session, make_user):
    organizer = make_user("org@campus.edu", limit=3)
    fest = EventService.create_event(db_session, organizer, event_data(
        event_name="TechFest",
        start_time=datetime(2030, 2, 1, 9, 0),
        end_time=datetime(2030, 2, 2, 18, 0),
    ))

    with pytest.raises(ValidationFailed):
        EventService.create_event(db_session, organizer, event_data(
            parent_id=fest.id,
            start_time=datetime(2030, 2, 2, 17, 0),
            end_time=datetime(2030, 2, 2, 19, 0),
        ))

    child = EventService.create_event(db_session, organizer, event_data(parent_id=fest.id))
    assert child.parent_id == fest.id


def test_sub_organizer_needs_approved_request_for_the_fest(db_session, make_user):
    owner = make_user("owner@campus.edu", limit=2)
    fest = EventService.create_event(db_session, owner, event_data(
        event_name="TechFest",
        start_time=datetime(2030, 2, 1, 9, 0),
        end_time=datetime(2030, 2, 2, 18, 0),
    ))
    sub = make_user("sub@campus.edu", role=UserRole.SUB_ORGANIZER, limit=2, expiry=date(2030, 12, 31))

    with pytest.raises(Forbidden):
        EventService.create_event(db_session, sub, event_data(parent_id=fest.id))
    with pytest.raises(ValidationFailed):
        EventService.create_event(db_session, sub, event_data())

    db_session.add(EventRequest(
        requestor_email="sub@campus.edu",
        event_details="Drone race",
        request_type="Technical",
        scope=RequestScope.PART_OF_FEST,
        parent_fest_id=fest.id,
        status=RequestStatus.APPROVED,
    ))
    db_session.commit()

    event = EventService.create_event(db_session, sub, event_data(parent_id=fest.id))
    assert event.organizer_id == sub.id
    assert sub.event_creation_limit == 1


def test_organizer_cannot_add_to_someone_elses_fest(db_session, make_user):
    owner = make_user("owner@campus.edu", limit=1)
    other = make_user("other@campus.edu", limit=1)
    fest = EventService.create_event(db_session, owner, event_data(
        start_time=datetime(2030, 2, 1, 9, 0),
        end_time=datetime(2030, 2, 2, 18, 0),
    ))

    with pytest.raises(Forbidden):
        EventService.create_event(db_session, other, event_data(parent_id=fest.id))


def test_update_is_owner_only(db_session, make_user, event_admin):
    owner = make_user("owner@campus.edu", limit=1)
    event = EventService.create_event(db_session, owner, event_data())

    with pytest.raises(Forbidden):
        EventService.update_event(db_session, event_admin, event.id, EventUpdate(venue="Auditorium"))

    updated = EventService.update_event(db_session, owner, event.id, EventUpdate(venue="Auditorium"))
    assert updated.venue == "Auditorium"


def test_delete_cascades_to_sub_events(db_session, make_user, event_admin):
    owner = make_user("owner@campus.edu", limit=2)
    fest = EventService.create_event(db_session, owner, event_data(
        start_time=datetime(2030, 2, 1, 9, 0),
        end_time=datetime(2030, 2, 2, 18, 0),
    ))
    EventService.create_event(db_session, owner, event_data(parent_id=fest.id))

    EventService.delete_event(db_session, event_admin, fest.id)

    assert db_session.query(Event).count() == 0


def test_fest_listing_only_returns_parents_with_children(db_session, make_user):
    owner = make_user("owner@campus.edu", limit=3)
    fest = EventService.create_event(db_session, owner, event_data(
        event_name="TechFest",
        start_time=datetime(2030, 2, 1, 9, 0),
        end_time=datetime(2030, 2, 2, 18, 0),
    ))
    EventService.create_event(db_session, owner, event_data(parent_id=fest.id))
    EventService.create_event(db_session, owner, event_data(event_name="Standalone talk"))

    fests = EventService.list_events(db_session, kind="fest", now=datetime(2030, 1, 1))

    assert [e.id for e in fests] == [fest.id]
    assert len(EventService.list_events(db_session, now=datetime(2030, 1, 1))) == 3
