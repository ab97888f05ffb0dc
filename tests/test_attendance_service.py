"""
Tests for attendance conflict reconciliation
"""

from datetime import datetime, time

import pytest

from campus_events.core.errors import Forbidden
from campus_events.models import EventMember
from campus_events.models.enums import MemberRole, MemberType
from campus_events.services.attendance_service import (
    NO_ATTENDEES, NO_CONFLICTS, SENT, AttendanceService, ClassSession, EventWindow, StudentInfo,
    build_conflict_reports, overlaps, parse_time_slot,
)

COHORT = ("BTECH-CSE", 3, "A")

# Monday 3 March 2025, 10:30-12:00
WINDOW = EventWindow(1, "Hackathon", "Main Hall", datetime(2025, 3, 3, 10, 30), datetime(2025, 3, 3, 12, 0))


def student(student_id, cohort=COHORT):
    return StudentInfo(student_id, f"Student {student_id}", f"{student_id.lower()}@campus.edu", student_id[-1], cohort)


def session(entry_id, slot, employee_id="EMP42", subject="Data Structures", day="Monday", cohort=COHORT):
    return ClassSession(
        entry_id=entry_id,
        cohort=cohort,
        course_name="B.Tech CSE",
        subject_name=subject,
        day=day,
        time_slot=slot,
        employee_id=employee_id,
        employee_name=f"Faculty {employee_id}",
        employee_email=f"{employee_id.lower()}@campus.edu",
    )


# -------- Pure helpers --------

def test_parse_time_slot():
    assert parse_time_slot("10:00-11:00") == (time(10, 0), time(11, 0))
    assert parse_time_slot(" 9:05 - 10:15 ") == (time(9, 5), time(10, 15))


@pytest.mark.parametrize("slot", ["", "10-11", "10:00", "11:00-10:00", "10:00-10:00", "25:00-26:00", "ten:00-11:00"])
def test_parse_time_slot_rejects_malformed(slot):
    with pytest.raises(ValueError):
        parse_time_slot(slot)


def test_overlap_is_symmetric_and_half_open():
    a = (datetime(2025, 3, 3, 10, 0), datetime(2025, 3, 3, 11, 0))
    b = (datetime(2025, 3, 3, 10, 30), datetime(2025, 3, 3, 12, 0))
    touching = (datetime(2025, 3, 3, 11, 0), datetime(2025, 3, 3, 12, 0))

    assert overlaps(*a, *b) and overlaps(*b, *a)
    assert not overlaps(*a, *touching)
    assert not overlaps(*touching, *a)


# -------- Pure stage --------

def test_only_overlapping_classes_are_reported():
    reports = build_conflict_reports(
        WINDOW,
        [student("S001")],
        [session("E1", "10:00-11:00"), session("E2", "12:00-13:00", employee_id="EMP17", subject="Operating Systems")],
    )

    assert list(reports) == ["EMP42"]
    [missed] = reports["EMP42"].sessions
    assert missed.key.subject_name == "Data Structures"
    assert missed.key.time_slot == "10:00-11:00"
    assert [s.student_id for s in missed.students] == ["S001"]


def test_other_cohorts_and_days_are_ignored():
    reports = build_conflict_reports(
        WINDOW,
        [student("S001")],
        [
            session("E1", "10:00-11:00", cohort=("BTECH-CSE", 3, "B")),
            session("E2", "10:00-11:00", day="Tuesday"),
        ],
    )
    assert reports == {}


def test_malformed_slots_are_skipped(caplog):
    reports = build_conflict_reports(
        WINDOW,
        [student("S001")],
        [session("BAD", "10:00 to 11:00"), session("E1", "11:00-12:00")],
    )

    assert [s.key.time_slot for s in reports["EMP42"].sessions] == ["11:00-12:00"]
    assert "BAD" in caplog.text


def test_reports_group_students_and_sessions_deterministically():
    attendees = [student("S003"), student("S001"), student("S002", cohort=("BTECH-CSE", 3, "B"))]
    sessions = [
        session("E3", "11:00-12:00", subject="Algorithms"),
        session("E1", "10:00-11:00"),
        session("E4", "10:00-11:00", employee_id="EMP07", cohort=("BTECH-CSE", 3, "B")),
    ]

    first = build_conflict_reports(WINDOW, attendees, sessions)
    second = build_conflict_reports(WINDOW, list(reversed(attendees)), list(reversed(sessions)))

    assert first == second
    assert list(first) == ["EMP07", "EMP42"]
    assert [s.key.subject_name for s in first["EMP42"].sessions] == ["Data Structures", "Algorithms"]
    assert [s.student_id for s in first["EMP42"].sessions[0].students] == ["S001", "S003"]
    assert [s.student_id for s in first["EMP07"].sessions[0].students] == ["S002"]


def test_window_is_clipped_at_midnight():
    late = EventWindow(1, "Night Hack", "Lab", datetime(2025, 3, 3, 22, 0), datetime(2025, 3, 4, 11, 0))
    reports = build_conflict_reports(
        late,
        [student("S001")],
        [session("E1", "10:00-11:00"), session("E2", "22:30-23:30", employee_id="EMP17")],
    )
    assert list(reports) == ["EMP17"]


# -------- Full run --------

@pytest.fixture
def organizer(make_user):
    return make_user("org@campus.edu", limit=1)


async def test_send_attendance_mails_affected_faculty(db_session, campus, organizer, make_event, add_participant, memory_mailer):
    event = make_event(organizer)
    add_participant(event, "S001", checked_in=True)
    add_participant(event, "S002", checked_in=False)
    db_session.add(EventMember(event_id=event.id, member_id="S004", member_type=MemberType.STUDENT,
                               role=MemberRole.COMMITTEE_MEMBER))
    db_session.commit()

    result = await AttendanceService(memory_mailer).send_attendance_report(db_session, event.id, organizer)

    assert result.status == SENT
    assert result.faculty_notified == ["EMP42"]
    assert result.failed == []
    outbox = memory_mailer.transport.outbox
    assert [m["To"] for m in outbox] == ["rao@campus.edu"]
    body = outbox[0].get_content()
    assert "Data Structures" in body
    assert "S001" in body
    assert "S002" not in body
    assert "S004" in body  # committee listing


async def test_no_attendees_sends_nothing(db_session, campus, organizer, make_event, add_participant, memory_mailer):
    event = make_event(organizer)
    add_participant(event, "S001", checked_in=False)

    result = await AttendanceService(memory_mailer).send_attendance_report(db_session, event.id, organizer)

    assert result.status == NO_ATTENDEES
    assert memory_mailer.transport.outbox == []


async def test_no_conflicts_sends_nothing(db_session, campus, organizer, make_event, add_participant, memory_mailer):
    event = make_event(organizer, start_time=datetime(2025, 3, 3, 14, 0), end_time=datetime(2025, 3, 3, 16, 0))
    add_participant(event, "S001", checked_in=True)

    result = await AttendanceService(memory_mailer).send_attendance_report(db_session, event.id, organizer)

    assert result.status == NO_CONFLICTS
    assert memory_mailer.transport.outbox == []


async def test_unresolvable_attendees_are_skipped(db_session, campus, organizer, make_event, add_participant, memory_mailer):
    event = make_event(organizer)
    add_participant(event, "S001", checked_in=True)
    add_participant(event, "GHOST", checked_in=True)

    result = await AttendanceService(memory_mailer).send_attendance_report(db_session, event.id, organizer)

    assert result.faculty_notified == ["EMP42"]
    assert "GHOST" not in memory_mailer.transport.outbox[0].get_content()


async def test_failed_delivery_is_reported(db_session, campus, organizer, make_event, add_participant, memory_mailer):
    class BrokenTransport:
        def send(self, message):
            raise ConnectionError("SMTP down")

    memory_mailer.transport = BrokenTransport()
    event = make_event(organizer)
    add_participant(event, "S001", checked_in=True)

    result = await AttendanceService(memory_mailer).send_attendance_report(db_session, event.id, organizer)

    assert result.status == SENT
    assert result.faculty_notified == []
    assert result.failed == ["EMP42"]


async def test_only_owner_or_admin_runs_report(db_session, campus, organizer, make_user, make_event, memory_mailer):
    event = make_event(organizer)
    stranger = make_user("other@campus.edu")

    with pytest.raises(Forbidden):
        await AttendanceService(memory_mailer).send_attendance_report(db_session, event.id, stranger)
