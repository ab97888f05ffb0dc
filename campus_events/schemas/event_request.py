"""
Event request schemas
"""

from datetime import date, datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from campus_events.models.enums import RequestScope, RequestStatus
from campus_events.schemas.common import CamelModel

class EventRequestCreate(CamelModel):
    """Public submission of an event request"""
    requestor_email: EmailStr
    event_details: str = Field(min_length=1)
    request_type: str = Field(min_length=1, max_length=100)
    scope: RequestScope
    parent_fest_id: Optional[int] = None
    requested_event_count: int = Field(default=1, ge=1)

    @field_validator("event_details", "request_type")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

class EventRequestResponse(CamelModel):
    id: int
    requestor_email: str
    event_details: str
    request_type: str
    scope: RequestScope
    parent_fest_id: Optional[int] = None
    requested_event_count: int
    status: RequestStatus
    created_at: Optional[datetime] = None

class AdminApproval(CamelModel):
    """Admin approval parameters"""
    event_creation_limit: int = Field(ge=0)
    access_expiry_date: date

class ApprovalResponse(CamelModel):
    user_email: str
    temp_password: str
    status: RequestStatus
