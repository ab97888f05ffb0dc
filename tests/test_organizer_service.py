"""
Tests for payment review, organizing team and leaderboard
"""

import pytest

from campus_events.core.errors import Conflict, Forbidden, InvalidState, NotFound, ValidationFailed
from campus_events.models import EventMember, Team
from campus_events.models.enums import (
    CompetitorType, MemberRole, MemberType, PaymentStatus, RegistrationType,
)
from campus_events.schemas.event import LeaderboardUpdate, RegistrationCreate, ScoreEntry
from campus_events.schemas.organizer import TeamMemberCreate
from campus_events.services.mailer import MailKind
from campus_events.services.organizer_service import OrganizerService, competition_ranks
from campus_events.services.registration_service import RegistrationService


@pytest.fixture
def organizer(make_user):
    return make_user("org@campus.edu", limit=1)


# -------- Payments --------

def test_pending_verifications_lists_teams_and_individuals(db_session, campus, organizer, make_event):
    solo_event = make_event(organizer, is_paid_event=True)
    team_event = make_event(organizer, is_paid_event=True, registration_type=RegistrationType.TEAM)
    RegistrationService.register(db_session, solo_event.id, RegistrationCreate(student_id="S001", transaction_id="T1"))
    RegistrationService.register(db_session, team_event.id, RegistrationCreate(
        team_name="Byte Me", leader_student_id="S002", transaction_id="T2",
    ))

    teams, individuals = OrganizerService.pending_verifications(db_session, organizer, solo_event.id)
    assert teams == [] and [m.member_id for m in individuals] == ["S001"]

    teams, individuals = OrganizerService.pending_verifications(db_session, organizer, team_event.id)
    assert [t.team_name for t in teams] == ["Byte Me"] and individuals == []


def test_verify_free_registration_is_invalid(db_session, campus, organizer, make_event, add_participant):
    event = make_event(organizer)
    member = add_participant(event, "S001")

    with pytest.raises(InvalidState):
        OrganizerService.verify_payment(db_session, organizer, "Individual", member.id)


def test_reject_team_payment_deletes_team_and_notifies_leader(db_session, campus, organizer, make_event):
    event = make_event(organizer, is_paid_event=True, registration_type=RegistrationType.TEAM)
    team = RegistrationService.register(db_session, event.id, RegistrationCreate(
        team_name="Byte Me", leader_student_id="S001", member_student_ids=["S002"], transaction_id="T2",
    ))

    notice = OrganizerService.reject_payment(db_session, organizer, "Team", team.id, reason="Amount mismatch")

    assert db_session.query(Team).count() == 0
    assert db_session.query(EventMember).count() == 0
    assert notice.kind == MailKind.PAYMENT_REJECTED
    assert notice.recipient == "s001@campus.edu"
    assert notice.context["reason"] == "Amount mismatch"


def test_reject_payment_of_another_organizers_event(db_session, campus, organizer, make_user, make_event, add_participant):
    event = make_event(organizer, is_paid_event=True)
    member = add_participant(event, "S001", payment_status=PaymentStatus.PENDING)
    stranger = make_user("other@campus.edu")

    with pytest.raises(Forbidden):
        OrganizerService.reject_payment(db_session, stranger, "Individual", member.id)
    assert db_session.query(EventMember).count() == 1


def test_unknown_payment_record(db_session, organizer):
    with pytest.raises(NotFound):
        OrganizerService.verify_payment(db_session, organizer, "Team", 404)


# -------- Organizing team --------

def test_add_and_remove_team_members(db_session, campus, organizer, make_event):
    event = make_event(organizer)

    student = OrganizerService.add_team_member(db_session, organizer, event.id, TeamMemberCreate(
        member_id="S001", member_type=MemberType.STUDENT, role=MemberRole.STUDENT_ORGANISER,
    ))
    OrganizerService.add_team_member(db_session, organizer, event.id, TeamMemberCreate(
        member_id="EMP42", member_type=MemberType.EMPLOYEE, role=MemberRole.EMPLOYEE_ORGANISER,
    ))

    team = OrganizerService.list_team(db_session, organizer, event.id)
    assert {(m["member_id"], m["name"]) for m in team} == {("S001", "Student 1"), ("EMP42", "Dr. Rao")}

    with pytest.raises(Conflict):
        OrganizerService.add_team_member(db_session, organizer, event.id, TeamMemberCreate(
            member_id="S001", member_type=MemberType.STUDENT, role=MemberRole.STUDENT_ORGANISER,
        ))

    OrganizerService.remove_team_member(db_session, organizer, event.id, student.id)
    assert [m["member_id"] for m in OrganizerService.list_team(db_session, organizer, event.id)] == ["EMP42"]


def test_team_roles_are_checked(db_session, campus, organizer, make_event):
    event = make_event(organizer)

    with pytest.raises(ValidationFailed):
        OrganizerService.add_team_member(db_session, organizer, event.id, TeamMemberCreate(
            member_id="S001", member_type=MemberType.STUDENT, role=MemberRole.PARTICIPANT,
        ))
    with pytest.raises(ValidationFailed):
        OrganizerService.add_team_member(db_session, organizer, event.id, TeamMemberCreate(
            member_id="S001", member_type=MemberType.STUDENT, role=MemberRole.EMPLOYEE_ORGANISER,
        ))


def test_participants_cannot_be_removed_as_team_members(db_session, campus, organizer, make_event, add_participant):
    event = make_event(organizer)
    member = add_participant(event, "S001")

    with pytest.raises(NotFound):
        OrganizerService.remove_team_member(db_session, organizer, event.id, member.id)


# -------- Leaderboard --------

def test_competition_ranks():
    assert competition_ranks([50, 90, 70, 90]) == [4, 1, 3, 1]
    assert competition_ranks([]) == []


def test_leaderboard_upsert_and_rank(db_session, campus, organizer, make_event):
    event = make_event(organizer, has_leaderboard=True)

    OrganizerService.update_leaderboard(db_session, organizer, event.id, LeaderboardUpdate(scores=[
        ScoreEntry(competitor_id="S001", competitor_type=CompetitorType.INDIVIDUAL, marks=80),
        ScoreEntry(competitor_id="S002", competitor_type=CompetitorType.INDIVIDUAL, marks=95),
        ScoreEntry(competitor_id="S003", competitor_type=CompetitorType.INDIVIDUAL, marks=80),
    ], show_marks=True))
    rows = OrganizerService.update_leaderboard(db_session, organizer, event.id, LeaderboardUpdate(scores=[
        ScoreEntry(competitor_id="S004", competitor_type=CompetitorType.INDIVIDUAL, marks=10),
    ], show_marks=True))

    assert [(r.competitor_id, r.rank) for r in rows] == [("S002", 1), ("S001", 2), ("S003", 2), ("S004", 4)]

    board = OrganizerService.get_leaderboard(db_session, event.id)
    assert board[0]["competitor_name"] == "Student 2"
    assert board[0]["marks"] == 95


def test_leaderboard_hides_marks_when_asked(db_session, campus, organizer, make_event):
    event = make_event(organizer, has_leaderboard=True)
    OrganizerService.update_leaderboard(db_session, organizer, event.id, LeaderboardUpdate(scores=[
        ScoreEntry(competitor_id="S001", competitor_type=CompetitorType.INDIVIDUAL, marks=80),
    ], show_marks=False))

    board = OrganizerService.get_leaderboard(db_session, event.id)

    assert board[0]["rank"] == 1
    assert board[0]["marks"] is None


def test_leaderboard_requires_flag(db_session, organizer, make_event):
    event = make_event(organizer)

    with pytest.raises(InvalidState):
        OrganizerService.update_leaderboard(db_session, organizer, event.id, LeaderboardUpdate(scores=[]))
