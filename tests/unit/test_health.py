"""Tests for GET /health."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

from httpx import AsyncClient


def _engine(up: bool = True) -> MagicMock:
    conn = MagicMock()
    conn.execute = AsyncMock(side_effect=None if up else OSError("connection refused"))

    @asynccontextmanager
    async def _connect():
        yield conn

    engine = MagicMock()
    engine.connect = MagicMock(side_effect=_connect)
    return engine


async def test_healthy(client: AsyncClient, app) -> None:
    app.state.engine = _engine()
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "version": "0.1.0", "database": "up", "redis": "up"}


async def test_redis_down(client: AsyncClient, app, fake_redis) -> None:
    app.state.engine = _engine()
    fake_redis.fail = True
    resp = await client.get("/health")
    assert resp.status_code == 503
    assert resp.json()["redis"] == "down"
    assert resp.json()["database"] == "up"


async def test_database_down(client: AsyncClient, app) -> None:
    app.state.engine = _engine(up=False)
    resp = await client.get("/health")
    assert resp.status_code == 503
    assert resp.json()["status"] == "unhealthy"
    assert resp.json()["database"] == "down"
