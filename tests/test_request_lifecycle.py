"""
Tests for the event request lifecycle
"""

from datetime import date, datetime

import pytest

from campus_events.core.errors import Conflict, Forbidden, InvalidState, ValidationFailed
from campus_events.models import EventRequest, User
from campus_events.models.enums import RequestScope, RequestStatus, UserRole
from campus_events.schemas.event_request import EventRequestCreate
from campus_events.services.credentials import verify_password
from campus_events.services.repositories import EventRequestRepo, UserRepo
from campus_events.services.request_lifecycle import (
    LIFECYCLE_EDGES, TERMINAL_STATES, RequestLifecycle,
)

EXPIRY = date(2030, 12, 31)


@pytest.fixture
def lifecycle():
    return RequestLifecycle()


@pytest.fixture
def fest(make_user, make_event):
    owner = make_user("fest.owner@campus.edu", role=UserRole.ORGANIZER, limit=2)
    event = make_event(
        owner,
        event_name="TechFest",
        start_time=datetime(2030, 2, 1, 9, 0),
        end_time=datetime(2030, 2, 3, 18, 0),
    )
    return owner, event


def submit(lifecycle, db, email, scope=RequestScope.STANDALONE, parent_fest_id=None):
    return lifecycle.submit(db, EventRequestCreate(
        requestor_email=email,
        event_details="Coding contest for second years",
        request_type="Technical",
        scope=scope,
        parent_fest_id=parent_fest_id,
    ))


def test_submit_starts_pending_admin(db_session, lifecycle):
    request = submit(lifecycle, db_session, "New.Organizer@Campus.edu")

    assert request.status == RequestStatus.PENDING_ADMIN
    assert request.requestor_email == "new.organizer@campus.edu"


def test_standalone_request_cannot_name_a_parent(db_session, lifecycle, fest):
    _, fest_event = fest
    with pytest.raises(ValidationFailed):
        submit(lifecycle, db_session, "x@campus.edu", RequestScope.STANDALONE, fest_event.id)


def test_part_of_fest_requires_parent(db_session, lifecycle):
    with pytest.raises(ValidationFailed):
        submit(lifecycle, db_session, "x@campus.edu", RequestScope.PART_OF_FEST)


def test_standalone_approval_mints_organizer(db_session, lifecycle, event_admin):
    request = submit(lifecycle, db_session, "solo@campus.edu")

    result = lifecycle.admin_approve(db_session, request.id, 3, EXPIRY, event_admin)

    assert result.status == RequestStatus.APPROVED
    user = UserRepo.get_by_email(db_session, "solo@campus.edu")
    assert user.role == UserRole.ORGANIZER
    assert user.event_creation_limit == 3
    assert user.access_expiry_date == EXPIRY
    assert user.must_change_password is True
    assert len(result.one_time_password) >= 22
    assert verify_password(result.one_time_password, user.password_hash)
    assert result.one_time_password not in repr(result)
    assert EventRequestRepo.get(db_session, request.id).status == RequestStatus.APPROVED


def test_fest_request_rejected_by_main_organizer_revokes_access(db_session, lifecycle, event_admin, fest):
    owner, fest_event = fest
    request = submit(lifecycle, db_session, "sub@campus.edu", RequestScope.PART_OF_FEST, fest_event.id)

    result = lifecycle.admin_approve(db_session, request.id, 2, EXPIRY, event_admin)
    assert result.status == RequestStatus.PENDING_MAIN_ORGANIZER
    assert UserRepo.get_by_email(db_session, "sub@campus.edu").role == UserRole.SUB_ORGANIZER

    rejected = lifecycle.main_organizer_reject(db_session, request.id, owner)

    assert rejected.status == RequestStatus.REJECTED
    user = UserRepo.get_by_email(db_session, "sub@campus.edu")
    assert user.role == UserRole.GUEST
    assert user.event_creation_limit == 0


def test_fest_request_approved_by_main_organizer(db_session, lifecycle, event_admin, fest):
    owner, fest_event = fest
    request = submit(lifecycle, db_session, "sub@campus.edu", RequestScope.PART_OF_FEST, fest_event.id)
    lifecycle.admin_approve(db_session, request.id, 2, EXPIRY, event_admin)

    approved = lifecycle.main_organizer_approve(db_session, request.id, owner)

    assert approved.status == RequestStatus.APPROVED
    assert UserRepo.get_by_email(db_session, "sub@campus.edu").role == UserRole.SUB_ORGANIZER


def test_second_rejection_is_invalid_state(db_session, lifecycle, event_admin, fest):
    owner, fest_event = fest
    request = submit(lifecycle, db_session, "sub@campus.edu", RequestScope.PART_OF_FEST, fest_event.id)
    lifecycle.admin_approve(db_session, request.id, 2, EXPIRY, event_admin)
    lifecycle.main_organizer_reject(db_session, request.id, owner)

    with pytest.raises(InvalidState):
        lifecycle.main_organizer_reject(db_session, request.id, owner)
    assert EventRequestRepo.get(db_session, request.id).status == RequestStatus.REJECTED


def test_only_the_fest_owner_reviews_sub_event_requests(db_session, lifecycle, event_admin, fest, make_user):
    _, fest_event = fest
    stranger = make_user("other.owner@campus.edu", role=UserRole.ORGANIZER)
    request = submit(lifecycle, db_session, "sub@campus.edu", RequestScope.PART_OF_FEST, fest_event.id)
    lifecycle.admin_approve(db_session, request.id, 2, EXPIRY, event_admin)

    with pytest.raises(Forbidden):
        lifecycle.main_organizer_approve(db_session, request.id, stranger)
    assert EventRequestRepo.get(db_session, request.id).status == RequestStatus.PENDING_MAIN_ORGANIZER


def test_admin_cannot_approve_twice(db_session, lifecycle, event_admin):
    request = submit(lifecycle, db_session, "solo@campus.edu")
    lifecycle.admin_approve(db_session, request.id, 1, EXPIRY, event_admin)

    with pytest.raises(InvalidState):
        lifecycle.admin_approve(db_session, request.id, 1, EXPIRY, event_admin)


def test_approval_conflicts_with_existing_user(db_session, lifecycle, event_admin, make_user):
    make_user("taken@campus.edu")
    request = submit(lifecycle, db_session, "taken@campus.edu")

    with pytest.raises(Conflict):
        lifecycle.admin_approve(db_session, request.id, 1, EXPIRY, event_admin)
    assert EventRequestRepo.get(db_session, request.id).status == RequestStatus.PENDING_ADMIN


def test_non_admin_cannot_approve(db_session, lifecycle, make_user):
    organizer = make_user("org@campus.edu")
    request = submit(lifecycle, db_session, "solo@campus.edu")

    with pytest.raises(Forbidden):
        lifecycle.admin_approve(db_session, request.id, 1, EXPIRY, organizer)


def test_racing_reviewers_exactly_one_wins(db_session, other_session, lifecycle, event_admin):
    request = submit(lifecycle, db_session, "race@campus.edu")
    # the second reviewer has already read the request as Pending_Admin
    assert EventRequestRepo.get(other_session, request.id).status == RequestStatus.PENDING_ADMIN
    admin_b = UserRepo.get(other_session, event_admin.id)

    lifecycle.admin_reject(db_session, request.id, event_admin)

    with pytest.raises(InvalidState):
        lifecycle.admin_approve(other_session, request.id, 1, EXPIRY, admin_b)

    db_session.expire_all()
    assert EventRequestRepo.get(db_session, request.id).status == RequestStatus.REJECTED
    assert UserRepo.get_by_email(db_session, "race@campus.edu") is None


def test_lifecycle_graph_only_moves_forward():
    allowed = {
        (RequestStatus.SUBMITTED, RequestStatus.PENDING_ADMIN),
        (RequestStatus.PENDING_ADMIN, RequestStatus.APPROVED),
        (RequestStatus.PENDING_ADMIN, RequestStatus.PENDING_MAIN_ORGANIZER),
        (RequestStatus.PENDING_ADMIN, RequestStatus.REJECTED),
        (RequestStatus.PENDING_MAIN_ORGANIZER, RequestStatus.APPROVED),
        (RequestStatus.PENDING_MAIN_ORGANIZER, RequestStatus.REJECTED),
    }
    assert LIFECYCLE_EDGES == allowed
    assert not any(source in TERMINAL_STATES for source, _ in LIFECYCLE_EDGES)


def test_pending_lists(db_session, lifecycle, event_admin, fest):
    owner, fest_event = fest
    solo = submit(lifecycle, db_session, "solo@campus.edu")
    sub = submit(lifecycle, db_session, "sub@campus.edu", RequestScope.PART_OF_FEST, fest_event.id)
    lifecycle.admin_approve(db_session, sub.id, 1, EXPIRY, event_admin)

    assert [r.id for r in lifecycle.list_pending_admin(db_session)] == [solo.id]
    assert [r.id for r in lifecycle.list_pending_for_main_organizer(db_session, owner)] == [sub.id]
