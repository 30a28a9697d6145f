"""Sliding-window rate limiting backed by a Redis sorted set.

Key pattern: "ratelimit:user:<uuid>" for signed-in callers,
"ratelimit:ip:<address>" otherwise. Each request adds one member scored with
its Unix time (seconds); members older than the window are trimmed on every
check and the key expires after one idle window.

Rules:
  - Count is taken BEFORE the current request is added, and the request is
    recorded even when rejected, so a client hammering past the limit keeps
    its window full.
  - Outside production the limiter is skipped entirely (no Redis calls).
  - A Redis failure is reported as BackendUnavailableError (503), never as an
    implicit allow or deny.
"""

import logging
import time
import uuid
from collections.abc import Callable
from typing import Annotated

import redis.asyncio as aioredis
from fastapi import Depends, Request
from redis.exceptions import RedisError

from src.rs_common.errors import BackendUnavailableError, RateLimitError
from src.rs_gateway.auth.dependencies import SessionResolution, resolve_session

logger = logging.getLogger("rs.ratelimit")


class RateLimiter:
    def __init__(
        self,
        redis: aioredis.Redis,
        max_requests: int,
        window_seconds: int,
        enabled: bool,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._redis = redis
        self._max = max_requests
        self._window = window_seconds
        self._enabled = enabled
        self._clock = clock

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def window_seconds(self) -> int:
        return self._window

    async def allow(self, identity: str) -> bool:
        """Record one request for ``identity`` and report whether it fits the window."""
        if not self._enabled:
            return True

        key = f"ratelimit:{identity}"
        now = int(self._clock())
        window_start = now - self._window
        # Same-second requests must stay distinct set members
        member = f"{now}-{uuid.uuid4().hex[:12]}"

        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.zremrangebyscore(key, 0, window_start)
                pipe.zcard(key)
                pipe.zadd(key, {member: now})
                pipe.expire(key, self._window)
                _, count, _, _ = await pipe.execute()
        except RedisError as exc:
            logger.error("ratelimit.allow failed for %s: %s", identity, exc)
            raise BackendUnavailableError("ratelimit.allow") from exc

        return int(count) < self._max


def client_ip(request: Request) -> str:
    """First X-Forwarded-For hop (reverse proxy aware), else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for", "")
    first = forwarded.split(",")[0].strip()
    if first:
        return first
    if request.client is not None:
        return request.client.host
    return "unknown"


def identity_for(request: Request, user_id: uuid.UUID | None) -> str:
    if user_id is not None:
        return f"user:{user_id}"
    return f"ip:{client_ip(request)}"


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


async def enforce_rate_limit(
    request: Request,
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
    resolution: Annotated[SessionResolution, Depends(resolve_session)],
) -> None:
    """FastAPI dependency: raise RateLimitError (429) when the caller's window is full."""
    identity = identity_for(request, resolution.user_id)
    if not await limiter.allow(identity):
        logger.info("rate limit exceeded for %s on %s", identity, request.url.path)
        raise RateLimitError(retry_after=limiter.window_seconds)
