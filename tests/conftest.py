"""
Pytest configuration and fixtures for tests.
Provides reusable test fixtures for database, cache, users, and poll setup.
"""
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Dict, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ballot.core.cache import RedisCache, get_cache
from ballot.core.database import get_db
from ballot.core.rate_limit import limiter
from ballot.core.security import create_access_token, hash_password
from ballot.main import app
from ballot.models import Base, Poll, PollOption, PollOptionImage, User


# Test database URL (use separate test database)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"  # In-memory SQLite for tests

TEST_PASSWORD = "secret123"


class FakeRedis:
    """In-memory stand-in for redis.asyncio.Redis covering the calls RedisCache makes."""

    def __init__(self):
        self.store: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value):
        self.store[key] = value
        return True

    async def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    async def delete(self, key):
        self.ttls.pop(key, None)
        return 1 if self.store.pop(key, None) is not None else 0

    async def exists(self, key):
        return 1 if key in self.store else 0

    async def ping(self):
        return True

    async def aclose(self):
        return None


class FailingRedis:
    """Redis stand-in whose every call fails as if the server were down."""

    def __getattr__(self, name):
        async def fail(*args, **kwargs):
            raise RedisConnectionError("Connection refused")
        return fail


class FixedClock:
    """Controllable UTC clock for time-dependent services."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def disable_rate_limit():
    """Rate limits are process-global; keep them out of unrelated tests."""
    limiter.enabled = False
    yield
    limiter.enabled = True
    limiter.reset()


@pytest.fixture(scope="function")
async def test_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    TestSessionLocal = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def cache(fake_redis) -> RedisCache:
    """RedisCache wired to the in-memory Redis double."""
    handle = RedisCache(url="")
    handle.redis = fake_redis
    return handle


@pytest.fixture
def failing_cache() -> RedisCache:
    """RedisCache whose backend errors on every call."""
    handle = RedisCache(url="")
    handle.redis = FailingRedis()
    return handle


@pytest.fixture
def clock() -> FixedClock:
    """Clock fixed at midday UTC."""
    return FixedClock(datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc))


async def _create_user(db_session: AsyncSession, name: str, email: str) -> User:
    user = User(
        name=name,
        email=email,
        password_hash=hash_password(TEST_PASSWORD)
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
def user_password() -> str:
    """Plain-text password of the fixture users."""
    return TEST_PASSWORD


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user (poll creator in most tests)."""
    return await _create_user(db_session, "Test User", "test@example.com")


@pytest.fixture
async def test_user_2(db_session: AsyncSession) -> User:
    """Create a second test user (voter in most tests)."""
    return await _create_user(db_session, "Second User", "second@example.com")


async def create_poll(
    db_session: AsyncSession,
    creator: User,
    option_texts=("Pizza", "Salad", "Soup"),
    *,
    is_active: bool = True,
    end_date: Optional[datetime] = None,
    title: str = "Best lunch spot"
) -> Poll:
    """Insert a poll with options; the first option gets one image."""
    poll = Poll(
        title=title,
        description="Vote once a day",
        creator_id=creator.id,
        is_active=is_active,
        end_date=end_date,
        options=[
            PollOption(
                text=text,
                position=position,
                images=[
                    PollOptionImage(
                        image_url=f"https://cdn.example.com/{text.lower()}.jpg",
                        is_primary=True,
                        display_order=0
                    )
                ] if position == 0 else []
            )
            for position, text in enumerate(option_texts)
        ]
    )
    db_session.add(poll)
    await db_session.commit()
    return poll


@pytest.fixture
def poll_factory(db_session: AsyncSession):
    """Create extra polls: ``await poll_factory(creator, is_active=False)``."""
    async def factory(creator: User, option_texts=("Pizza", "Salad", "Soup"), **kwargs) -> Poll:
        return await create_poll(db_session, creator, option_texts, **kwargs)
    return factory


@pytest.fixture
async def test_poll(db_session: AsyncSession, test_user) -> Poll:
    """Create an open poll with three options owned by test_user."""
    return await create_poll(db_session, test_user)


def make_auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token(
        data={"user_id": user.id, "email": user.email, "name": user.name}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(test_user) -> Dict[str, str]:
    """Authentication headers for test_user."""
    return make_auth_headers(test_user)


@pytest.fixture
def auth_headers_2(test_user_2) -> Dict[str, str]:
    """Authentication headers for test_user_2."""
    return make_auth_headers(test_user_2)


@pytest.fixture(scope="function")
async def client(db_session: AsyncSession, cache: RedisCache) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with dependency overrides."""

    async def override_get_db():
        yield db_session

    def override_get_cache():
        return cache

    # Override dependencies
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = override_get_cache
    app.state.cache = cache

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    # Clear overrides after test
    app.dependency_overrides.clear()
