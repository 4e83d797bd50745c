"""Role reference table and the role hierarchy."""

import enum
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Enum, Uuid
from app.core.database import Base


class RoleType(str, enum.Enum):
    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    EDITOR = "editor"
    PLAYER = "player"
    VIEWER = "viewer"


# Roles that may invite users and change other users' roles
MANAGER_ROLES = {RoleType.SUPERADMIN, RoleType.ADMIN}
# Roles an admin (as opposed to a superadmin) may hand out or take away
ADMIN_ASSIGNABLE_ROLES = {RoleType.EDITOR, RoleType.PLAYER, RoleType.VIEWER}

ROLE_DESCRIPTIONS = {
    RoleType.SUPERADMIN: "Full access, including managing admins",
    RoleType.ADMIN: "Manages users, invitations and games",
    RoleType.EDITOR: "Manages game content",
    RoleType.PLAYER: "Plays games",
    RoleType.VIEWER: "Read-only access to admin analytics",
}


class Role(Base):
    __tablename__ = "roles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(
        Enum(RoleType, name="role_type", values_callable=lambda e: [m.value for m in e]),
        unique=True,
        nullable=False,
    )
    description = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
