"""Pending or accepted invitations to join the portal with a given role."""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Uuid
from sqlalchemy.orm import relationship
from app.core.database import Base


class Invitation(Base):
    __tablename__ = "invitations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String, nullable=False, index=True)
    role_id = Column(Uuid, ForeignKey("roles.id"), nullable=False)
    token = Column(String, unique=True, nullable=False, index=True)
    is_accepted = Column(Boolean, nullable=False, default=False)
    expires_at = Column(DateTime, nullable=False)
    invited_by_id = Column(Uuid, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    role = relationship("Role", lazy="joined")
    invited_by = relationship("User", lazy="joined")

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.expires_at <= (now or datetime.utcnow())
