"""Shared test fixtures.

FakeRedis implements the handful of commands the session store and rate
limiter issue (strings with TTL, sorted sets, MULTI/EXEC pipelines) against
an injectable clock, so expiry and sliding windows can be tested without
sleeping or a live server.
"""

import uuid
from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from config.settings import Settings
from src.main import create_app
from src.rs_common.database import get_db_session
from src.rs_common.errors import UserNotFoundError
from src.rs_gateway.auth.dependencies import get_user_service
from src.rs_gateway.middleware.rate_limit import RateLimiter
from src.rs_gateway.session.store import SessionStore
from src.rs_gateway.user.db_models import UserModel


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePipeline:
    def __init__(self, redis: "FakeRedis") -> None:
        self._redis = redis
        self._ops: list[tuple[str, tuple]] = []

    async def __aenter__(self) -> "FakePipeline":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self._ops.clear()

    def zremrangebyscore(self, key: str, min_score: float, max_score: float) -> "FakePipeline":
        self._ops.append(("zremrangebyscore", (key, min_score, max_score)))
        return self

    def zcard(self, key: str) -> "FakePipeline":
        self._ops.append(("zcard", (key,)))
        return self

    def zadd(self, key: str, mapping: dict[str, float]) -> "FakePipeline":
        self._ops.append(("zadd", (key, mapping)))
        return self

    def expire(self, key: str, seconds: int) -> "FakePipeline":
        self._ops.append(("expire", (key, seconds)))
        return self

    async def execute(self) -> list:
        self._redis.check()
        ops, self._ops = self._ops, []
        return [getattr(self._redis, f"_{name}")(*args) for name, args in ops]


class FakeRedis:
    def __init__(self, clock: FakeClock) -> None:
        self._clock = clock
        self._data: dict[str, object] = {}
        self._expiry: dict[str, float] = {}
        self.fail = False

    def check(self) -> None:
        if self.fail:
            raise RedisConnectionError("connection refused")

    def _alive(self, key: str) -> bool:
        deadline = self._expiry.get(key)
        if deadline is not None and deadline <= self._clock():
            self._data.pop(key, None)
            self._expiry.pop(key, None)
        return key in self._data

    def ttl_of(self, key: str) -> float | None:
        if not self._alive(key) or key not in self._expiry:
            return None
        return self._expiry[key] - self._clock()

    def raw(self, key: str) -> object:
        return self._data[key] if self._alive(key) else None

    # --- strings ---

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.check()
        self._data[key] = value
        self._expiry.pop(key, None)
        if ex is not None:
            self._expiry[key] = self._clock() + ex
        return True

    async def get(self, key: str) -> str | None:
        self.check()
        return self._data[key] if self._alive(key) else None  # type: ignore[return-value]

    async def getex(self, key: str, ex: int | None = None) -> str | None:
        self.check()
        if not self._alive(key):
            return None
        if ex is not None:
            self._expiry[key] = self._clock() + ex
        return self._data[key]  # type: ignore[return-value]

    async def delete(self, *keys: str) -> int:
        self.check()
        removed = 0
        for key in keys:
            if self._alive(key):
                removed += 1
            self._data.pop(key, None)
            self._expiry.pop(key, None)
        return removed

    async def exists(self, *keys: str) -> int:
        self.check()
        return sum(1 for key in keys if self._alive(key))

    async def ping(self) -> bool:
        self.check()
        return True

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)

    # --- pipeline ops ---

    def _zset(self, key: str) -> dict[str, float]:
        if not self._alive(key):
            self._data[key] = {}
        return self._data[key]  # type: ignore[return-value]

    def _zremrangebyscore(self, key: str, min_score: float, max_score: float) -> int:
        zset = self._zset(key)
        doomed = [m for m, s in zset.items() if float(min_score) <= s <= float(max_score)]
        for member in doomed:
            del zset[member]
        return len(doomed)

    def _zcard(self, key: str) -> int:
        return len(self._zset(key))

    def _zadd(self, key: str, mapping: dict[str, float]) -> int:
        zset = self._zset(key)
        added = sum(1 for m in mapping if m not in zset)
        zset.update(mapping)
        return added

    def _expire(self, key: str, seconds: int) -> bool:
        if not self._alive(key):
            return False
        self._expiry[key] = self._clock() + seconds
        return True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_redis(clock: FakeClock) -> FakeRedis:
    return FakeRedis(clock)


def make_user(**kwargs) -> UserModel:
    user = UserModel()
    user.id = kwargs.get("id", uuid.uuid4())
    user.provider_id = kwargs.get("provider_id", "gh-4242")
    user.provider = kwargs.get("provider", "GITHUB")
    user.email = kwargs.get("email", "neo@example.com")
    user.name = kwargs.get("name", "Neo")
    user.created_at = kwargs.get("created_at", datetime.now(UTC))
    user.updated_at = kwargs.get("updated_at", datetime.now(UTC))
    return user


class StubUsers:
    """In-memory stand-in for UserService.get (the auth user-lookup collaborator)."""

    def __init__(self) -> None:
        self.users: dict[uuid.UUID, UserModel] = {}
        self.update = AsyncMock()
        self.delete = AsyncMock()

    def add(self, user: UserModel) -> UserModel:
        self.users[user.id] = user
        return user

    async def get(self, db: object, user_id: uuid.UUID) -> UserModel:
        try:
            return self.users[user_id]
        except KeyError:
            raise UserNotFoundError(str(user_id)) from None


@pytest.fixture
def test_settings() -> Settings:
    return Settings(APP_ENV="local", RATE_LIMIT_MAX_REQUESTS=3, RATE_LIMIT_WINDOW_SECONDS=60)


@pytest.fixture
def stub_users() -> StubUsers:
    return StubUsers()


@pytest.fixture
def db() -> MagicMock:
    session = MagicMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    return session


@pytest.fixture
def app(test_settings, fake_redis, clock, stub_users, db):
    """App wired to FakeRedis and a mock AsyncSession; lifespan is not run."""
    application = create_app(test_settings)
    application.state.session_store = SessionStore(fake_redis, test_settings.SESSION_TTL_SECONDS)
    application.state.rate_limiter = RateLimiter(
        fake_redis,
        max_requests=test_settings.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=test_settings.RATE_LIMIT_WINDOW_SECONDS,
        enabled=test_settings.is_production,
        clock=clock,
    )
    application.state.redis = fake_redis

    async def _db() -> AsyncGenerator[MagicMock, None]:
        yield db

    application.dependency_overrides[get_db_session] = _db
    application.dependency_overrides[get_user_service] = lambda: stub_users
    return application


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def signed_in(app, client, stub_users, fake_redis):
    """Register a user, store a session for it and attach the cookie to ``client``."""
    user = stub_users.add(make_user())
    store: SessionStore = app.state.session_store
    token = store.generate_id()
    await store.set(token, user.id)
    client.cookies.set("session", token)
    return user, token


@pytest.fixture
def user_factory():
    return make_user
