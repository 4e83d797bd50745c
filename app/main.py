import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.router import api_router
from app.core.config import settings
from app.core.database import async_session, engine
from app.core.errors import setup_error_handlers
from app.core.logging import setup_logging
from app.core.seed import seed_initial_data
from app.services.cache import CacheService, create_redis
from app.services.email_service import EmailService
from app.services.geoip import GeoIpService
from app.services.job_queue import JobQueue
from app.services.sms import TwilioVerifyClient
from app.services.tokens import TokenService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    await seed_initial_data()
    app.state.cache = CacheService(create_redis(settings.REDIS_URL) if settings.REDIS_URL else None)
    app.state.job_queue = await JobQueue.connect(settings.REDIS_URL, async_session)
    yield
    await app.state.job_queue.close()
    await app.state.cache.close()
    await engine.dispose()


def create_app() -> FastAPI:
    setup_logging()

    app = FastAPI(
        title="Arcade Portal API",
        description="Game portal backend: OTP login, invitations and roles, gameplay analytics",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.email_service = EmailService(settings)
    app.state.verify_client = TwilioVerifyClient(settings)
    app.state.token_service = TokenService(settings)
    app.state.geoip = GeoIpService(settings.GEOIP_URL)
    # Replaced with Redis-backed instances in lifespan
    app.state.cache = CacheService(None)
    app.state.job_queue = JobQueue(None, async_session)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_error_handlers(app)
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health")
    async def health():
        return {"status": "ok", "service": "arcade-portal-api", "version": "0.1.0"}

    return app


app = create_app()
