"""One-time passcodes issued during login."""

import enum
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Enum, Uuid
from app.core.database import Base

# Stored instead of a code when Twilio Verify owns the secret
TWILIO_VERIFY_SENTINEL = "TWILIO_VERIFY"


class OtpType(str, enum.Enum):
    EMAIL = "EMAIL"
    SMS = "SMS"
    NONE = "NONE"


class Otp(Base):
    __tablename__ = "otps"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    email = Column(String, nullable=True)
    phone_number = Column(String, nullable=True)
    type = Column(Enum(OtpType, name="otp_type"), nullable=False)
    secret = Column(String, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    is_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
