"""
Authentication and user management schemas
"""

from datetime import date, datetime
from typing import Optional

from pydantic import EmailStr, Field

from campus_events.models.enums import UserRole
from campus_events.schemas.common import CamelModel

class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)

class TokenResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    must_change_password: bool

class ChangePasswordRequest(CamelModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=10, max_length=72)

class UserResponse(CamelModel):
    id: int
    email: str
    role: UserRole
    event_creation_limit: int
    access_expiry_date: Optional[date] = None
    must_change_password: bool
    created_at: Optional[datetime] = None

class RoleUpdate(CamelModel):
    role: UserRole
