"""
Database models package
"""

from .user import User
from .event_request import EventRequest
from .event import Club, Event, Team, EventMember, Leaderboard
from .academic import Department, Course, Subject, Student, Employee, TimeTable, TimeTableEntry
from .resource import Resource, EventRequirement

__all__ = [
    "User",
    "EventRequest",
    "Club",
    "Event",
    "Team",
    "EventMember",
    "Leaderboard",
    "Department",
    "Course",
    "Subject",
    "Student",
    "Employee",
    "TimeTable",
    "TimeTableEntry",
    "Resource",
    "EventRequirement",
]
