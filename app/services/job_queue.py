"""Background job queue over arq.

Without a Redis URL the queue runs jobs inline in the request, which keeps
local development and tests free of a Redis dependency.
"""

import logging
import uuid
from typing import Optional
from arq import create_pool
from arq.connections import ArqRedis, RedisSettings

from app.jobs.tasks import JOB_FUNCTIONS

logger = logging.getLogger(__name__)


class JobQueue:
    def __init__(self, pool: Optional[ArqRedis] = None, session_factory=None):
        self.pool = pool
        self.session_factory = session_factory

    @classmethod
    async def connect(cls, redis_url: str, session_factory) -> "JobQueue":
        if not redis_url:
            logger.warning("REDIS_URL not configured, background jobs will run inline")
            return cls(None, session_factory)
        pool = await create_pool(RedisSettings.from_dsn(redis_url))
        return cls(pool, session_factory)

    async def enqueue(self, name: str, **data) -> str:
        """Queue job ``name`` with keyword arguments. Returns the job id."""
        if name not in JOB_FUNCTIONS:
            raise ValueError(f"Unknown job: {name}")

        if self.pool is None:
            job_id = uuid.uuid4().hex
            ctx = {"session_factory": self.session_factory, "job_id": job_id, "job_try": 1, "inline": True}
            await JOB_FUNCTIONS[name](ctx, **data)
            return job_id

        job = await self.pool.enqueue_job(name, **data)
        logger.debug("Enqueued %s as %s", name, job.job_id if job else None)
        return job.job_id if job else ""

    async def close(self) -> None:
        if self.pool is not None:
            await self.pool.aclose()
            self.pool = None
