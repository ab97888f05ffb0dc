"""
Event request model
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from campus_events.core.db import Base
from campus_events.models.enums import RequestScope, RequestStatus, enum_type

class EventRequest(Base):
    __tablename__ = "event_requests"

    id = Column(Integer, primary_key=True, index=True)
    requestor_email = Column(String(255), nullable=False, index=True)
    event_details = Column(Text, nullable=False)
    request_type = Column(String(100), nullable=False)
    scope = Column(enum_type(RequestScope), nullable=False)
    parent_fest_id = Column(Integer, ForeignKey("events.id", ondelete="SET NULL"), nullable=True)
    requested_event_count = Column(Integer, nullable=False, default=1)
    status = Column(enum_type(RequestStatus), nullable=False, default=RequestStatus.PENDING_ADMIN, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    parent_fest = relationship("Event", foreign_keys=[parent_fest_id])

    __table_args__ = (
        CheckConstraint("requested_event_count >= 1", name="ck_event_requests_count_positive"),
    )
