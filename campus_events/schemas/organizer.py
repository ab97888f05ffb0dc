"""
Organizer tooling schemas: check-in, payments, team and resource requests
"""

from typing import List, Literal, Optional

from pydantic import Field, model_validator

from campus_events.models.enums import MemberRole, MemberType, PaymentStatus
from campus_events.schemas.common import CamelModel

class CheckInRequest(CamelModel):
    """Either the scanned pass ``payload`` or the event and student ids"""
    event_id: Optional[int] = None
    student_id: Optional[str] = Field(default=None, min_length=1)
    payload: Optional[str] = None

    @model_validator(mode="after")
    def has_target(self):
        if not self.payload and (self.event_id is None or not self.student_id):
            raise ValueError("a scanned pass or both eventId and studentId are required")
        return self

class CheckInResponse(CamelModel):
    event_id: int
    student_id: str
    member_id: int
    team_id: Optional[int] = None
    checked_in: bool

class PaymentAction(CamelModel):
    """Verify or reject the payment of a team or an individual registration"""
    type: Literal["Team", "Individual"]
    id: int
    reason: Optional[str] = None

class PendingTeam(CamelModel):
    id: int
    team_name: str
    team_leader_student_id: str
    payment_status: PaymentStatus
    transaction_id: Optional[str] = None
    payment_screenshot_path: Optional[str] = None

class PendingIndividual(CamelModel):
    id: int
    member_id: str
    payment_status: PaymentStatus
    transaction_id: Optional[str] = None
    payment_screenshot_path: Optional[str] = None

class TeamMemberCreate(CamelModel):
    member_id: str = Field(min_length=1)
    member_type: MemberType
    role: MemberRole

class RequirementItem(CamelModel):
    resource_id: Optional[str] = None
    quantity: int = 0

class RequirementCreate(CamelModel):
    items: List[RequirementItem]
