"""Clicks on signup entry points, tracked before an account exists."""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Uuid
from app.core.database import Base


class SignupAnalytics(Base):
    __tablename__ = "signup_analytics"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(String, nullable=True, index=True)
    ip_address = Column(String, nullable=True)
    country = Column(String, nullable=True)
    device_type = Column(String, nullable=False, default="desktop")  # mobile, tablet, desktop
    type = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
