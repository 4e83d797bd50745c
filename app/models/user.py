"""Portal user account."""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Uuid
from sqlalchemy.orm import relationship
from app.core.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    phone_number = Column(String, nullable=True, index=True)
    hashed_password = Column(String, nullable=False)
    role_id = Column(Uuid, ForeignKey("roles.id"), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    is_adult = Column(Boolean, nullable=False, default=False)
    has_accepted_terms = Column(Boolean, nullable=False, default=False)
    is_deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime, nullable=True)
    last_logged_in = Column(DateTime, nullable=True)
    last_seen = Column(DateTime, nullable=True)
    # "" + epoch expiry marks a consumed token; NULL means never requested
    reset_token = Column(String, nullable=True, index=True)
    reset_token_expiry = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    role = relationship("Role", lazy="joined")

    @property
    def role_name(self) -> str:
        return self.role.name.value

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
