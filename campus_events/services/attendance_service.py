"""
Attendance conflict reconciliation.

After an event, every checked-in student is absent from the classes their
cohort had during the event window. This module works out, per faculty
member, which of their sessions were missed and by whom, and mails each
faculty member one consolidated report.

The work is split in three stages:

``load_attendance_inputs``
    reads the event, attendees, committee and candidate timetable entries
    from the database into plain values.
``build_conflict_reports``
    a pure function from those values to per-faculty reports.
``dispatch_reports``
    sends one ``AttendanceReport`` mail per faculty member, concurrently.

Only the event's start day is considered: the window is clipped at the
following midnight and compared against that weekday's classes.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session, selectinload

from campus_events.core.deadline import Deadline
from campus_events.models import Event, TimeTable, TimeTableEntry, User
from campus_events.services.event_service import ensure_can_manage, get_event_or_404
from campus_events.services.mailer import DeliveryResult, MailDescriptor, MailKind, Mailer
from campus_events.services.repositories import MemberRepo, PeopleRepo

logger = logging.getLogger(__name__)

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

Cohort = Tuple[str, int, str]  # (course_id, year, section)

_SLOT_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*-\s*(\d{1,2}):(\d{2})\s*$")


# -------- Time helpers --------

def weekday_name(moment: datetime) -> str:
    return WEEKDAYS[moment.weekday()]


def weekday_index(day: str) -> int:
    try:
        return WEEKDAYS.index(day.strip().capitalize())
    except ValueError:
        return len(WEEKDAYS)


def parse_time_slot(slot: str) -> Tuple[time, time]:
    """Parse ``"HH:MM-HH:MM"`` into start and end times.

    Raises ValueError for anything else, including a slot that does not end
    after it starts.
    """
    match = _SLOT_RE.match(slot or "")
    if not match:
        raise ValueError(f"Malformed time slot: {slot!r}")
    start_h, start_m, end_h, end_m = (int(g) for g in match.groups())
    start, end = time(start_h, start_m), time(end_h, end_m)
    if end <= start:
        raise ValueError(f"Time slot ends before it starts: {slot!r}")
    return start, end


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open interval overlap; touching intervals do not overlap"""
    return a_start < b_end and b_start < a_end


# -------- Values --------

@dataclass(frozen=True)
class EventWindow:
    event_id: int
    event_name: str
    venue: str
    start: datetime
    end: datetime

    @property
    def day(self) -> str:
        return weekday_name(self.start)

    @property
    def day_end(self) -> datetime:
        midnight = datetime.combine(self.start.date() + timedelta(days=1), time())
        return min(self.end, midnight)

    def on_event_day(self, moment: time) -> datetime:
        return datetime.combine(self.start.date(), moment)


@dataclass(frozen=True)
class StudentInfo:
    student_id: str
    name: str
    email: str
    class_roll_no: str
    cohort: Cohort


@dataclass(frozen=True)
class CommitteeMember:
    student_id: str
    name: str
    role: str


@dataclass(frozen=True)
class ClassSession:
    entry_id: str
    cohort: Cohort
    course_name: str
    subject_name: str
    day: str
    time_slot: str
    employee_id: str
    employee_name: str
    employee_email: str
    room_no: Optional[str] = None


@dataclass(frozen=True, order=True)
class ClassKey:
    """Identifies one missed session within a faculty member's report"""
    course_name: str
    year: int
    section: str
    subject_name: str
    time_slot: str

    @property
    def label(self) -> str:
        return f"{self.course_name} {self.year} {self.section} ({self.subject_name}) - Slot: {self.time_slot}"


@dataclass
class MissedSession:
    key: ClassKey
    day: str
    class_start: time
    room_no: Optional[str] = None
    students: List[StudentInfo] = field(default_factory=list)

    def sort_key(self):
        return (weekday_index(self.day), self.class_start, self.key.subject_name, self.key)


@dataclass
class FacultyReport:
    employee_id: str
    employee_name: str
    employee_email: str
    sessions: List[MissedSession] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "employeeId": self.employee_id,
            "employeeName": self.employee_name,
            "employeeEmail": self.employee_email,
            "sessions": [
                {
                    "label": s.key.label,
                    "courseName": s.key.course_name,
                    "year": s.key.year,
                    "section": s.key.section,
                    "subjectName": s.key.subject_name,
                    "timeSlot": s.key.time_slot,
                    "day": s.day,
                    "roomNo": s.room_no,
                    "students": [
                        {"studentId": st.student_id, "name": st.name, "classRollNo": st.class_roll_no}
                        for st in s.students
                    ],
                }
                for s in self.sessions
            ],
        }


@dataclass
class AttendanceInputs:
    window: EventWindow
    attendees: List[StudentInfo]
    sessions: List[ClassSession]
    committee: List[CommitteeMember]


# -------- Pure stage --------

def build_conflict_reports(window: EventWindow, attendees: Sequence[StudentInfo], sessions: Sequence[ClassSession]) -> Dict[str, FacultyReport]:
    """Group every (attendee, overlapping class of their cohort) pair by faculty.

    Returns reports keyed by employee id, in employee id order. Sessions in a
    report are ordered by weekday, start time and subject; students in a
    session by student id. Sessions with malformed slots are logged and
    ignored.
    """
    window_end = window.day_end
    event_day = window.day.lower()

    # cohort -> [(session, class start)] for sessions that overlap the window
    conflicting: Dict[Cohort, List[Tuple[ClassSession, time]]] = defaultdict(list)
    for session in sessions:
        if session.day.strip().lower() != event_day:
            continue
        try:
            start, end = parse_time_slot(session.time_slot)
        except ValueError as e:
            logger.warning("Skipping timetable entry %s for event %s: %s", session.entry_id, window.event_id, e)
            continue
        if overlaps(window.on_event_day(start), window.on_event_day(end), window.start, window_end):
            conflicting[session.cohort].append((session, start))

    reports: Dict[str, FacultyReport] = {}
    missed: Dict[Tuple[str, ClassKey], MissedSession] = {}
    for student in sorted(attendees, key=lambda s: s.student_id):
        for session, start in conflicting.get(student.cohort, ()):
            report = reports.get(session.employee_id)
            if report is None:
                report = reports[session.employee_id] = FacultyReport(
                    employee_id=session.employee_id,
                    employee_name=session.employee_name,
                    employee_email=session.employee_email,
                )
            _, year, section = session.cohort
            key = ClassKey(session.course_name, year, section, session.subject_name, session.time_slot)
            entry = missed.get((session.employee_id, key))
            if entry is None:
                entry = missed[(session.employee_id, key)] = MissedSession(
                    key=key, day=session.day, class_start=start, room_no=session.room_no,
                )
                report.sessions.append(entry)
            if all(s.student_id != student.student_id for s in entry.students):
                entry.students.append(student)

    for report in reports.values():
        report.sessions.sort(key=MissedSession.sort_key)
        for entry in report.sessions:
            entry.students.sort(key=lambda s: s.student_id)
    return {employee_id: reports[employee_id] for employee_id in sorted(reports)}


# -------- Load stage --------

def load_attendance_inputs(db: Session, event: Event) -> AttendanceInputs:
    window = EventWindow(
        event_id=event.id,
        event_name=event.event_name,
        venue=event.venue,
        start=event.start_time,
        end=event.end_time,
    )

    attendee_rows = MemberRepo.list_checked_in_students(db, event.id)
    committee_rows = MemberRepo.list_student_committee(db, event.id)
    students = PeopleRepo.students_by_ids(db, [m.member_id for m in attendee_rows + committee_rows])

    attendees: List[StudentInfo] = []
    for member in attendee_rows:
        student = students.get(member.member_id)
        if student is None or student.course is None:
            logger.warning("Skipping attendee %s of event %s: no student or course record", member.member_id, event.id)
            continue
        attendees.append(StudentInfo(
            student_id=student.student_id,
            name=student.name,
            email=student.email,
            class_roll_no=student.class_roll_no,
            cohort=student.cohort,
        ))

    committee: List[CommitteeMember] = []
    for member in committee_rows:
        student = students.get(member.member_id)
        if student is None:
            logger.warning("Committee member %s of event %s has no student record", member.member_id, event.id)
            continue
        committee.append(CommitteeMember(student.student_id, student.name, member.role.value))

    sessions = _load_sessions(db, {a.cohort for a in attendees}, window.day)
    return AttendanceInputs(window=window, attendees=attendees, sessions=sessions, committee=committee)


def _load_sessions(db: Session, cohorts: Iterable[Cohort], day: str) -> List[ClassSession]:
    cohorts = sorted(cohorts)
    if not cohorts:
        return []

    stmt = (
        select(TimeTableEntry)
        .join(TimeTable, TimeTableEntry.time_table_id == TimeTable.time_table_id)
        .where(
            or_(*(
                and_(TimeTable.course_id == course_id, TimeTable.year == year, TimeTable.section == section)
                for course_id, year, section in cohorts
            )),
            func.lower(TimeTableEntry.day) == day.lower(),
        )
        .options(
            selectinload(TimeTableEntry.time_table).selectinload(TimeTable.course),
            selectinload(TimeTableEntry.subject),
            selectinload(TimeTableEntry.employee),
        )
        .order_by(TimeTableEntry.entry_id)
    )

    sessions = []
    for entry in db.execute(stmt).scalars():
        tt = entry.time_table
        if tt.course is None or entry.subject is None or entry.employee is None:
            logger.warning("Skipping timetable entry %s: incomplete course, subject or employee", entry.entry_id)
            continue
        sessions.append(ClassSession(
            entry_id=entry.entry_id,
            cohort=tt.cohort,
            course_name=tt.course.course_name,
            subject_name=entry.subject.subject_name,
            day=entry.day,
            time_slot=entry.time_slot,
            employee_id=entry.employee.employee_id,
            employee_name=entry.employee.name,
            employee_email=entry.employee.email,
            room_no=entry.room_no,
        ))
    return sessions


# -------- Dispatch stage --------

def report_descriptor(report: FacultyReport, window: EventWindow, committee: Sequence[CommitteeMember]) -> MailDescriptor:
    return MailDescriptor(
        kind=MailKind.ATTENDANCE_REPORT,
        recipient=report.employee_email,
        context={
            "employee": {"employee_id": report.employee_id, "name": report.employee_name},
            "event": {
                "event_name": window.event_name,
                "venue": window.venue,
                "start_time": window.start.strftime("%a %d %b %Y %H:%M"),
                "end_time": window.end.strftime("%a %d %b %Y %H:%M"),
            },
            "classes": [
                {
                    "label": s.key.label,
                    "subject_name": s.key.subject_name,
                    "time_slot": s.key.time_slot,
                    "students": [
                        {"student_id": st.student_id, "name": st.name, "class_roll_no": st.class_roll_no}
                        for st in s.students
                    ],
                }
                for s in report.sessions
            ],
            "committee": [
                {"student_id": m.student_id, "name": m.name, "role": m.role}
                for m in committee
            ],
        },
    )


async def dispatch_reports(
    mailer: Mailer,
    reports: Dict[str, FacultyReport],
    window: EventWindow,
    committee: Sequence[CommitteeMember],
    deadline: Optional[Deadline] = None,
) -> List[DeliveryResult]:
    descriptors = [report_descriptor(r, window, committee) for r in reports.values()]
    timeout = deadline.remaining() if deadline is not None else None
    return await mailer.send_many(descriptors, timeout=timeout)


# -------- Service --------

NO_ATTENDEES = "no_attendees"
NO_CONFLICTS = "no_conflicts"
SENT = "sent"


@dataclass
class AttendanceRunResult:
    status: str
    message: str
    reports: List[FacultyReport] = field(default_factory=list)
    faculty_notified: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "facultyNotified": self.faculty_notified,
            "failed": self.failed,
            "reports": [r.to_dict() for r in self.reports],
        }


class AttendanceService:
    """Runs the attendance report for an event"""

    def __init__(self, mailer: Mailer):
        self.mailer = mailer

    @staticmethod
    def compute(db: Session, event_id: int, actor: User) -> Tuple[AttendanceInputs, Dict[str, FacultyReport]]:
        event = get_event_or_404(db, event_id)
        ensure_can_manage(event, actor)
        inputs = load_attendance_inputs(db, event)
        return inputs, build_conflict_reports(inputs.window, inputs.attendees, inputs.sessions)

    async def send_attendance_report(self, db: Session, event_id: int, actor: User, deadline: Optional[Deadline] = None) -> AttendanceRunResult:
        inputs, reports = self.compute(db, event_id, actor)

        if not inputs.attendees:
            logger.info("Attendance report for event %s: no checked-in students", event_id)
            return AttendanceRunResult(NO_ATTENDEES, "No students were checked in. No reports sent.")
        if not reports:
            logger.info("Attendance report for event %s: no conflicting classes", event_id)
            return AttendanceRunResult(
                NO_CONFLICTS,
                "Attendance report complete. No conflicting classes found for checked-in students.",
            )

        if deadline is not None:
            deadline.check()
        results = await dispatch_reports(self.mailer, reports, inputs.window, inputs.committee, deadline)

        report_list = list(reports.values())
        notified = [r.employee_id for r, res in zip(report_list, results) if res.ok]
        failed = [r.employee_id for r, res in zip(report_list, results) if not res.ok]
        if failed:
            logger.warning("Attendance report for event %s: delivery failed for %s", event_id, ", ".join(failed))
        logger.info("Attendance report for event %s sent to %d faculty members", event_id, len(notified))

        message = f"Attendance report sent to {len(notified)} faculty members."
        if failed:
            message += f" Delivery failed for {len(failed)}."
        return AttendanceRunResult(SENT, message, reports=report_list, faculty_notified=notified, failed=failed)
