"""
Event-related Pydantic schemas
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, field_validator, model_validator

from campus_events.models.enums import CompetitorType, RegistrationType
from campus_events.schemas.common import CamelModel, to_campus_time

class RegistrationField(CamelModel):
    """One custom question on an event's registration form"""
    name: str = Field(min_length=1)
    label: Optional[str] = None
    type: Literal["text", "number", "email", "select", "url"] = "text"
    required: bool = False
    options: List[str] = []

class EventCreate(CamelModel):
    """Schema for creating an event"""
    event_name: str = Field(min_length=1, max_length=255)
    event_desc: Optional[str] = None
    start_time: datetime
    end_time: datetime
    venue: str = Field(min_length=1, max_length=255)
    contact_details: Dict[str, Any]
    club_id: Optional[str] = None
    parent_id: Optional[int] = None
    registration_type: RegistrationType = RegistrationType.INDIVIDUAL
    registration_schema: List[RegistrationField] = []
    is_paid_event: bool = False
    has_leaderboard: bool = False
    show_leaderboard_marks: bool = False
    registration_locked: bool = False

    @field_validator("start_time", "end_time")
    @classmethod
    def campus_time(cls, value: datetime) -> datetime:
        return to_campus_time(value)

    @field_validator("contact_details")
    @classmethod
    def contact_required(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        if not value:
            raise ValueError("contact details are required")
        return value

    @model_validator(mode="after")
    def window_is_ordered(self):
        if self.end_time <= self.start_time:
            raise ValueError("end time must be after start time")
        return self

class EventUpdate(CamelModel):
    """Editable event fields; registration type and paid flag are fixed at creation"""
    event_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    event_desc: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    venue: Optional[str] = Field(default=None, min_length=1, max_length=255)
    club_id: Optional[str] = None
    contact_details: Optional[Dict[str, Any]] = None
    registration_locked: Optional[bool] = None
    show_leaderboard_marks: Optional[bool] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def campus_time(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_campus_time(value) if value is not None else None

class EventResponse(CamelModel):
    id: int
    event_name: str
    event_desc: Optional[str] = None
    start_time: datetime
    end_time: datetime
    venue: str
    organizer_id: int
    club_id: Optional[str] = None
    parent_id: Optional[int] = None
    registration_type: RegistrationType
    is_paid_event: bool
    has_leaderboard: bool
    show_leaderboard_marks: bool
    registration_locked: bool
    registration_schema: List[Dict[str, Any]] = []
    payment_qr_codes: List[str] = []
    banner_url: Optional[str] = None
    contact_details: Dict[str, Any] = {}

class SubEventSummary(CamelModel):
    id: int
    event_name: str
    start_time: datetime

class EventDetail(EventResponse):
    """Event with its sub-events"""
    sub_events: List[SubEventSummary] = []

class RegistrationCreate(CamelModel):
    """Participant registration: one student, or a team led by a student"""
    student_id: Optional[str] = None
    team_name: Optional[str] = None
    leader_student_id: Optional[str] = None
    member_student_ids: List[str] = []
    transaction_id: Optional[str] = None
    answers: Dict[str, Any] = {}

class ScoreEntry(CamelModel):
    competitor_id: str = Field(min_length=1)
    competitor_type: CompetitorType
    marks: float

class LeaderboardUpdate(CamelModel):
    scores: List[ScoreEntry]
    show_marks: bool = False

class LeaderboardRow(CamelModel):
    competitor_id: str
    competitor_type: CompetitorType
    competitor_name: Optional[str] = None
    marks: Optional[float] = None
    rank: Optional[int] = None
