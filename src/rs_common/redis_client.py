"""Redis client factory: used for sessions and rate limiting only.

The client (and its connection pool) is created by the application lifespan
and held on ``app.state.redis``.
"""

import redis.asyncio as aioredis
from fastapi import Request

from config.settings import Settings


def create_redis(settings: Settings) -> aioredis.Redis:
    """Build a Redis client backed by a shared connection pool."""
    return aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )


async def close_redis(client: aioredis.Redis) -> None:
    """Close the client and release its pool."""
    await client.aclose()


def get_redis(request: Request) -> aioredis.Redis:
    """FastAPI dependency: the application's Redis client."""
    return request.app.state.redis
