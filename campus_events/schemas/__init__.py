"""
Pydantic schemas package
"""

from .common import *
from .event_request import *
from .event import *
from .organizer import *
from .auth import *

__all__ = [
    "StandardResponse",
    "ErrorResponse",
    "CamelModel",
    "EventRequestCreate",
    "EventRequestResponse",
    "AdminApproval",
    "ApprovalResponse",
    "RegistrationField",
    "EventCreate",
    "EventUpdate",
    "EventResponse",
    "EventDetail",
    "RegistrationCreate",
    "ScoreEntry",
    "LeaderboardUpdate",
    "LeaderboardRow",
    "CheckInRequest",
    "CheckInResponse",
    "PaymentAction",
    "PendingTeam",
    "PendingIndividual",
    "TeamMemberCreate",
    "RequirementItem",
    "RequirementCreate",
    "LoginRequest",
    "TokenResponse",
    "ChangePasswordRequest",
    "UserResponse",
    "RoleUpdate",
]
