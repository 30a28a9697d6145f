"""Redis-backed session store.

Key layout:
    session:<token>  ->  "<user uuid>"   (EX = session TTL)

Reads slide the expiration back to the full TTL (GETEX), so an active user
stays signed in while an idle one is logged out after one TTL.
"""

import base64
import logging
import secrets
import uuid

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from src.rs_common.errors import BackendUnavailableError, SessionNotFoundError

logger = logging.getLogger("rs.auth")

DEFAULT_SESSION_TTL = 7 * 24 * 60 * 60
_TOKEN_BYTES = 32


def _key(token: str) -> str:
    return f"session:{token}"


class SessionStore:
    def __init__(self, redis: aioredis.Redis, ttl_seconds: int = DEFAULT_SESSION_TTL) -> None:
        self._redis = redis
        self._ttl = ttl_seconds or DEFAULT_SESSION_TTL

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    @staticmethod
    def generate_id() -> str:
        """256 bits from the OS CSPRNG, URL-safe base64 encoded (44 chars)."""
        return base64.urlsafe_b64encode(secrets.token_bytes(_TOKEN_BYTES)).decode("ascii")

    async def set(
        self, token: str, user_id: uuid.UUID, ttl_seconds: int | None = None
    ) -> None:
        """Map ``token`` to ``user_id``, replacing any earlier mapping.

        ``ttl_seconds`` defaults to the store-wide session TTL.
        """
        try:
            await self._redis.set(_key(token), str(user_id), ex=ttl_seconds or self._ttl)
        except RedisError as exc:
            logger.error("session.set failed for user %s: %s", user_id, exc)
            raise BackendUnavailableError("session.set") from exc

    async def get(self, token: str) -> uuid.UUID:
        """Return the session's user ID and refresh its TTL.

        Raises:
            SessionNotFoundError: token unknown, expired, or holding a corrupt value.
            BackendUnavailableError: Redis unreachable.
        """
        try:
            value = await self._redis.getex(_key(token), ex=self._ttl)
        except RedisError as exc:
            logger.error("session.get failed: %s", exc)
            raise BackendUnavailableError("session.get") from exc

        if value is None:
            raise SessionNotFoundError()
        try:
            return uuid.UUID(str(value))
        except ValueError:
            logger.warning("session record holds a non-UUID value, ignoring it")
            raise SessionNotFoundError() from None

    async def delete(self, token: str) -> None:
        try:
            await self._redis.delete(_key(token))
        except RedisError as exc:
            logger.error("session.delete failed: %s", exc)
            raise BackendUnavailableError("session.delete") from exc

    async def exists(self, token: str) -> bool:
        try:
            return bool(await self._redis.exists(_key(token)))
        except RedisError as exc:
            logger.error("session.exists failed: %s", exc)
            raise BackendUnavailableError("session.exists") from exc
