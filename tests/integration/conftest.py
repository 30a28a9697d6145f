"""Integration-test fixtures.

All integration tests share a single event loop and one running lifespan, so
the engine pool and Redis client built at startup stay valid across the whole
test session. Tests are skipped when PostgreSQL or Redis is unreachable.
"""

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from src.main import app, lifespan
from src.rs_gateway.user.service import UserService


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def live_app():
    """The module-level app with its lifespan running against real backends."""
    try:
        ctx = lifespan(app)
        await ctx.__aenter__()
    except (OSError, SQLAlchemyError, RedisError) as exc:
        pytest.skip(f"PostgreSQL/Redis unavailable: {exc}")
    yield app
    await ctx.__aexit__(None, None, None)


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client(live_app) -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client without a session cookie."""
    transport = ASGITransport(app=live_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _sign_in(live_app, ac: AsyncClient, name: str = "Integration") -> uuid.UUID:
    """Create a fresh user, store a session for it and attach the cookie to ``ac``."""
    provider_id = f"it-{uuid.uuid4().hex[:12]}"
    async with live_app.state.session_factory() as db:
        user = await UserService().find_or_create(
            db, provider_id, "GITHUB", f"{provider_id}@example.com", name
        )
        await db.commit()

    store = live_app.state.session_store
    token = store.generate_id()
    await store.set(token, user.id)
    ac.cookies.set(live_app.state.settings.SESSION_COOKIE_NAME, token)
    return user.id


@pytest.fixture
def sign_in():
    """The sign-in helper, for tests that need a second user."""
    return _sign_in


@pytest_asyncio.fixture(loop_scope="session")
async def auth_client(live_app):
    """Fresh signed-in client per test; yields (client, user_id)."""
    transport = ASGITransport(app=live_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        user_id = await _sign_in(live_app, ac)
        yield ac, user_id
