"""
Shared fixtures: a throwaway sqlite database, a memory mailer and small
factories for users, events and the academic records the tests need.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_campus_events.db")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("MAIL_BACKEND", "memory")
os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import datetime

import pytest
from sqlalchemy.orm import sessionmaker

from campus_events.core.db import Base, engine
from campus_events.models import (
    Course, Department, Employee, Event, EventMember, Student, Subject, TimeTable, TimeTableEntry, User,
)
from campus_events.models.enums import MemberRole, MemberType, PaymentStatus, RegistrationType, UserRole
from campus_events.services.credentials import hash_password
from campus_events.services.mailer import Mailer, MemoryTransport

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PASSWORD = "correct-horse-battery"


@pytest.fixture
def db_session():
    """Create test database session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def other_session(db_session):
    """A second session on the same database, for interleaving tests"""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def memory_mailer():
    return Mailer(MemoryTransport(), timeout=5)


@pytest.fixture
def make_user(db_session):
    def _make(email, role=UserRole.ORGANIZER, limit=0, expiry=None, must_change_password=False):
        user = User(
            email=email,
            password_hash=hash_password(PASSWORD, rounds=4),
            role=role,
            event_creation_limit=limit,
            access_expiry_date=expiry,
            must_change_password=must_change_password,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def event_admin(make_user):
    return make_user("admin@campus.edu", role=UserRole.EVENT_ADMIN)


@pytest.fixture
def make_event(db_session):
    def _make(organizer, **fields):
        values = dict(
            event_name="Hackathon",
            start_time=datetime(2025, 3, 3, 10, 30),
            end_time=datetime(2025, 3, 3, 12, 0),
            venue="Main Hall",
            organizer_id=organizer.id,
            registration_type=RegistrationType.INDIVIDUAL,
            contact_details={"phone": "9999999999"},
        )
        values.update(fields)
        event = Event(**values)
        db_session.add(event)
        db_session.commit()
        db_session.refresh(event)
        return event

    return _make


@pytest.fixture
def campus(db_session):
    """One cohort (BTECH-CSE year 3 section A) with a Monday timetable.

    Monday 10:00-11:00 Data Structures with EMP42, 12:00-13:00 Operating
    Systems with EMP17.
    """
    # subjects and students carry no relationship to their course, so parents go in first
    db_session.add(Department(department_id="CSE", department_name="Computer Science"))
    db_session.flush()
    db_session.add(Course(course_id="BTECH-CSE", course_name="B.Tech CSE", department_id="CSE"))
    db_session.flush()
    db_session.add_all([
        Subject(subject_id="SUB-DS", subject_name="Data Structures", subject_code="CS301", course_id="BTECH-CSE", year=3),
        Subject(subject_id="SUB-OS", subject_name="Operating Systems", subject_code="CS305", course_id="BTECH-CSE", year=3),
        Employee(employee_id="EMP42", name="Dr. Rao", email="rao@campus.edu", department_id="CSE", is_resource_incharge=True),
        Employee(employee_id="EMP17", name="Dr. Iyer", email="iyer@campus.edu", department_id="CSE"),
    ])
    db_session.add_all([
        Student(student_id=f"S00{i}", name=f"Student {i}", email=f"s00{i}@campus.edu",
                class_roll_no=str(i), year=3, section="A", course_id="BTECH-CSE")
        for i in range(1, 5)
    ])
    db_session.add(TimeTable(time_table_id="TT-CSE-3-A", course_id="BTECH-CSE", year=3, section="A"))
    db_session.flush()
    db_session.add_all([
        TimeTableEntry(entry_id="E1", time_table_id="TT-CSE-3-A", subject_id="SUB-DS", employee_id="EMP42",
                       day="Monday", time_slot="10:00-11:00", room_no="LH-101"),
        TimeTableEntry(entry_id="E2", time_table_id="TT-CSE-3-A", subject_id="SUB-OS", employee_id="EMP17",
                       day="Monday", time_slot="12:00-13:00", room_no="LH-101"),
    ])
    db_session.commit()


@pytest.fixture
def add_participant(db_session):
    def _add(event, student_id, checked_in=False, payment_status=PaymentStatus.NOT_APPLICABLE, team_id=None):
        member = EventMember(
            event_id=event.id,
            member_id=student_id,
            member_type=MemberType.STUDENT,
            role=MemberRole.PARTICIPANT,
            checked_in=checked_in,
            payment_status=payment_status,
            team_id=team_id,
        )
        db_session.add(member)
        db_session.commit()
        db_session.refresh(member)
        return member

    return _add
