"""Seed reference roles and the superadmin account on app startup."""

import logging
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import async_session
from app.models.role import ROLE_DESCRIPTIONS, Role, RoleType
from app.services.auth import AuthService

logger = logging.getLogger(__name__)


async def seed_roles(db: AsyncSession) -> None:
    """Insert any missing role rows."""
    result = await db.execute(select(Role.name))
    existing = set(result.scalars().all())
    missing = [name for name in RoleType if name not in existing]
    for name in missing:
        db.add(Role(name=name, description=ROLE_DESCRIPTIONS[name]))
    if missing:
        await db.commit()
        logger.info("Seeded roles: %s", ", ".join(r.value for r in missing))


async def seed_initial_data() -> None:
    """Seed roles and the configured superadmin if they don't exist."""
    async with async_session() as db:
        try:
            await seed_roles(db)
            await AuthService(db, settings).initialize_superadmin()
        except Exception as e:
            logger.error("Failed to seed initial data: %s", e)
            await db.rollback()
