"""
Event, team, member and leaderboard models
"""

from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, Float, JSON,
    ForeignKey, CheckConstraint, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from campus_events.core.db import Base
from campus_events.models.enums import (
    CompetitorType, MemberRole, MemberType, PaymentStatus, RegistrationType, enum_type,
)

class Club(Base):
    __tablename__ = "clubs"

    club_id = Column(String(50), primary_key=True)
    club_name = Column(String(255), unique=True, nullable=False)
    club_description = Column(Text)
    club_logo_url = Column(String(500))

    events = relationship("Event", back_populates="club")

class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    event_name = Column(String(255), nullable=False)
    event_desc = Column(Text)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    venue = Column(String(255), nullable=False)
    organizer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    club_id = Column(String(50), ForeignKey("clubs.club_id", ondelete="SET NULL"), nullable=True)
    parent_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=True, index=True)
    registration_type = Column(enum_type(RegistrationType), nullable=False, default=RegistrationType.INDIVIDUAL)
    is_paid_event = Column(Boolean, nullable=False, default=False)
    has_leaderboard = Column(Boolean, nullable=False, default=False)
    show_leaderboard_marks = Column(Boolean, nullable=False, default=False)
    registration_locked = Column(Boolean, nullable=False, default=False)
    registration_schema = Column(JSON, nullable=False, default=list)  # ordered custom fields
    payment_qr_codes = Column(JSON, nullable=False, default=list)
    banner_url = Column(String(500))
    contact_details = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    organizer = relationship("User", back_populates="events")
    club = relationship("Club", back_populates="events")
    parent = relationship("Event", remote_side=[id], back_populates="sub_events")
    sub_events = relationship("Event", back_populates="parent", cascade="all, delete-orphan", passive_deletes=True)
    teams = relationship("Team", back_populates="event", cascade="all, delete-orphan", passive_deletes=True)
    members = relationship("EventMember", back_populates="event", cascade="all, delete-orphan", passive_deletes=True)
    leaderboard = relationship("Leaderboard", back_populates="event", cascade="all, delete-orphan", passive_deletes=True)
    requirements = relationship("EventRequirement", back_populates="event", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_events_window"),
    )

    @property
    def is_sub_event(self) -> bool:
        return self.parent_id is not None

class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    team_name = Column(String(255), nullable=False)
    team_leader_student_id = Column(String(50), ForeignKey("students.student_id"), nullable=False)
    payment_status = Column(enum_type(PaymentStatus), nullable=False, default=PaymentStatus.NOT_APPLICABLE)
    transaction_id = Column(String(255))
    payment_screenshot_path = Column(String(500))

    # Relationships
    event = relationship("Event", back_populates="teams")
    leader = relationship("Student")
    members = relationship("EventMember", back_populates="team", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        UniqueConstraint("event_id", "team_name", name="uq_teams_event_name"),
    )

class EventMember(Base):
    __tablename__ = "event_members"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    member_id = Column(String(50), nullable=False)  # studentId or employeeId, see member_type
    member_type = Column(enum_type(MemberType), nullable=False)
    role = Column(enum_type(MemberRole), nullable=False, default=MemberRole.PARTICIPANT)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=True)
    payment_status = Column(enum_type(PaymentStatus), nullable=False, default=PaymentStatus.NOT_APPLICABLE)
    checked_in = Column(Boolean, nullable=False, default=False)
    transaction_id = Column(String(255))
    payment_screenshot_path = Column(String(500))
    registration_data = Column(JSON, nullable=False, default=dict)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    event = relationship("Event", back_populates="members")
    team = relationship("Team", back_populates="members")

    __table_args__ = (
        UniqueConstraint("event_id", "member_id", "role", name="uq_event_members_event_member_role"),
    )

class Leaderboard(Base):
    __tablename__ = "leaderboards"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    competitor_id = Column(String(50), nullable=False)
    competitor_type = Column(enum_type(CompetitorType), nullable=False)
    marks = Column(Float, nullable=False, default=0)
    rank = Column(Integer, nullable=True)

    event = relationship("Event", back_populates="leaderboard")

    __table_args__ = (
        UniqueConstraint("event_id", "competitor_id", "competitor_type", name="uq_leaderboards_competitor"),
    )
