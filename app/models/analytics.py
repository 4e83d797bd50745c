"""Gameplay and account activity records."""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, Uuid, event
from app.core.database import Base


class Analytics(Base):
    __tablename__ = "analytics"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=True, index=True)
    session_id = Column(String, nullable=True, index=True)
    game_id = Column(Uuid, ForeignKey("games.id"), nullable=True, index=True)
    activity_type = Column(String, nullable=False)
    start_time = Column(DateTime, nullable=False, default=datetime.utcnow)
    end_time = Column(DateTime, nullable=True)
    duration = Column(Integer, nullable=True)  # seconds
    session_count = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def compute_duration(self) -> None:
        if self.start_time and self.end_time:
            self.duration = int((self.end_time - self.start_time).total_seconds())
        else:
            self.duration = None


@event.listens_for(Analytics, "before_insert")
@event.listens_for(Analytics, "before_update")
def _set_duration(mapper, connection, target: Analytics) -> None:
    target.compute_duration()
