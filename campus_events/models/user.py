"""
User model
"""

from datetime import datetime, date
from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, CheckConstraint
from sqlalchemy.orm import relationship

from campus_events.core.db import Base
from campus_events.models.enums import UserRole, enum_type

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(enum_type(UserRole), nullable=False, default=UserRole.GUEST)
    event_creation_limit = Column(Integer, nullable=False, default=0)
    access_expiry_date = Column(Date, nullable=True)  # null = permanent access
    must_change_password = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    events = relationship("Event", back_populates="organizer")

    __table_args__ = (
        CheckConstraint("event_creation_limit >= 0", name="ck_users_limit_non_negative"),
    )

    def access_expired(self, today: date) -> bool:
        return self.access_expiry_date is not None and self.access_expiry_date < today
