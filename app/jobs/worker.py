"""arq worker settings.

Run with: arq app.jobs.worker.WorkerSettings
"""

import logging
from arq import cron
from arq.connections import RedisSettings

from app.core.config import settings
from app.core.database import async_session, engine
from app.core.logging import setup_logging
from app.jobs.tasks import (
    MAX_TRIES,
    check_inactive_users,
    close_analytics_session,
    record_analytics,
    sweep_invitations,
)

logger = logging.getLogger(__name__)


async def startup(ctx: dict) -> None:
    setup_logging()
    ctx["session_factory"] = async_session
    logger.info("Worker started")


async def shutdown(ctx: dict) -> None:
    await engine.dispose()
    logger.info("Worker shut down")


class WorkerSettings:
    """arq worker settings for analytics writes and housekeeping."""

    functions = [record_analytics, close_analytics_session]
    cron_jobs = [
        cron(check_inactive_users, hour={0}, minute={0}, run_at_startup=False),
        cron(sweep_invitations, minute={0}),
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = RedisSettings.from_dsn(settings.REDIS_URL or "redis://localhost:6379/0")
    max_jobs = 10
    max_tries = MAX_TRIES
    job_timeout = 60
