"""
Common Pydantic schemas
"""

from datetime import datetime
from typing import Any, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from campus_events.core.config import settings

class StandardResponse(BaseModel):
    """Standard API response"""
    success: bool
    message: str
    data: Optional[Any] = None

class ErrorResponse(BaseModel):
    """Error response schema"""
    success: bool = False
    message: str
    error_code: Optional[str] = None
    details: Optional[Any] = None

def to_campus_time(value: datetime) -> datetime:
    """Normalize a datetime to naive campus-local time"""
    if value.tzinfo is None:
        return value
    return value.astimezone(ZoneInfo(settings.CAMPUS_TIMEZONE)).replace(tzinfo=None)

class CamelModel(BaseModel):
    """Base for API payloads: camelCase on the wire, snake_case in Python"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    def to_api(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
