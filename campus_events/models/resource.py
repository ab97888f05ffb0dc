"""
Resource and event requirement models
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from campus_events.core.db import Base
from campus_events.models.enums import RequirementStatus, enum_type

class Resource(Base):
    __tablename__ = "resources"

    resource_id = Column(String(50), primary_key=True)
    resource_name = Column(String(255), unique=True, nullable=False)
    category = Column(String(100))
    incharge_employee_id = Column(String(50), ForeignKey("employees.employee_id"), nullable=False)

    incharge = relationship("Employee")

class EventRequirement(Base):
    __tablename__ = "event_requirements"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    resource_id = Column(String(50), ForeignKey("resources.resource_id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    status = Column(enum_type(RequirementStatus), nullable=False, default=RequirementStatus.PENDING)
    created_at = Column(DateTime, default=datetime.utcnow)

    event = relationship("Event", back_populates="requirements")
    resource = relationship("Resource")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_event_requirements_quantity"),
    )
