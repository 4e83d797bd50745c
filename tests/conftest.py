"""Shared test fixtures for the arcade portal API tests.

Each test gets its own in-memory SQLite database with the roles seeded.
SendGrid, Twilio, Redis and geo-IP are replaced with mocks through
FastAPI dependency overrides.
"""

import fnmatch
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.core.config import settings
from app.core.database import Base, get_db
from app.core.deps import (
    get_cache,
    get_email_service,
    get_geoip,
    get_job_queue,
    get_verify_client,
)
from app.core.seed import seed_roles
from app.main import app
from app.models.role import RoleType
from app.models.user import User
from app.services.auth import AuthService, hash_password
from app.services.cache import CacheService
from app.services.job_queue import JobQueue
from app.services.otp import OtpService
from app.services.tokens import TokenService

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "testpass123"


class FakeRedis:
    """Just enough of redis.asyncio.Redis for CacheService."""

    def __init__(self):
        self.store = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value

    async def scan_iter(self, match="*"):
        for key in list(self.store):
            if fnmatch.fnmatch(key, match):
                yield key

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed

    async def aclose(self):
        pass


@pytest_asyncio.fixture
async def session_factory():
    """Fresh in-memory database per test, roles seeded."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        await seed_roles(session)
    yield factory
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    """Direct DB session for test setup/assertions."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def email_service():
    mock = MagicMock()
    mock.enabled = True
    for name in (
        "send_email",
        "send_otp_email",
        "send_invitation_email",
        "send_password_reset_email",
        "send_role_changed_email",
        "send_role_revoked_email",
        "send_welcome_email",
    ):
        setattr(mock, name, AsyncMock(return_value=True))
    return mock


@pytest.fixture
def verify_client():
    mock = MagicMock()
    mock.missing_config.return_value = []
    mock.start_verification = AsyncMock(return_value="pending")
    mock.check_verification = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cache(fake_redis):
    return CacheService(fake_redis)


@pytest.fixture
def geoip():
    mock = MagicMock()
    mock.country_for_ip = AsyncMock(return_value="Local")
    return mock


@pytest.fixture
def token_service():
    return TokenService(settings)


@pytest.fixture
def otp_service(db, email_service, verify_client):
    return OtpService(db, email_service, verify_client, settings)


@pytest.fixture
def auth_service(db, email_service, otp_service, token_service):
    return AuthService(
        db,
        settings,
        email_service=email_service,
        otp_service=otp_service,
        token_service=token_service,
    )


@pytest_asyncio.fixture
async def client(session_factory, email_service, verify_client, cache, geoip):
    """Async HTTP test client wired to the per-test database and mocks."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_service] = lambda: email_service
    app.dependency_overrides[get_verify_client] = lambda: verify_client
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_geoip] = lambda: geoip
    app.dependency_overrides[get_job_queue] = lambda: JobQueue(None, session_factory)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Factory creating a user with the given role."""

    async def _make_user(
        email: str,
        role: RoleType = RoleType.PLAYER,
        password: str = TEST_PASSWORD,
        **fields,
    ) -> User:
        auth = AuthService(db, settings)
        role_row = await auth.get_role(role)
        user = User(
            first_name=fields.pop("first_name", "Test"),
            last_name=fields.pop("last_name", role.value.title()),
            email=email,
            hashed_password=hash_password(password),
            role_id=role_row.id,
            role=role_row,
            is_active=fields.pop("is_active", True),
            is_verified=fields.pop("is_verified", True),
            **fields,
        )
        db.add(user)
        await db.commit()
        return user

    return _make_user


@pytest.fixture
def auth_headers(token_service):
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {token_service.create_tokens(user).access_token}"}

    return _headers


@pytest_asyncio.fixture
async def superadmin(make_user):
    return await make_user("super@example.com", RoleType.SUPERADMIN)


@pytest_asyncio.fixture
async def admin(make_user):
    return await make_user("admin@example.com", RoleType.ADMIN)
