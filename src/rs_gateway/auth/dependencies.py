"""FastAPI dependencies: session-cookie authentication.

Three access policies share one per-request session resolution:

    require_user_page   browser routes; failures -> 303 to the login page
    require_user_api    JSON routes;    failures -> 401 ApiResponse
    optional_user       never blocks;   failures -> None

Usage in any protected router:
    from src.rs_gateway.auth.dependencies import CurrentUser, require_user_api

    @router.get("/protected")
    async def protected(current: Annotated[CurrentUser, Depends(require_user_api)]):
        ...

When a session points at a user that no longer exists, both required
policies delete the orphaned session and expire the cookie; the optional
policy leaves both untouched.
"""

import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import Settings
from src.rs_common.database import get_db_session
from src.rs_common.errors import (
    AuthenticationRequiredError,
    BackendUnavailableError,
    LoginRedirect,
    SessionNotFoundError,
    UserNotFoundError,
)
from src.rs_gateway.session.store import SessionStore
from src.rs_gateway.user.db_models import UserModel
from src.rs_gateway.user.service import UserService

logger = logging.getLogger("rs.auth")

_user_service = UserService()


class SessionOutcome(str, Enum):
    NO_COOKIE = "NO_COOKIE"
    INVALID_SESSION = "INVALID_SESSION"
    USER_VANISHED = "USER_VANISHED"
    AUTHENTICATED = "AUTHENTICATED"


@dataclass(frozen=True)
class CurrentUser:
    """Identity handed to route handlers by the auth dependencies."""

    user: UserModel
    user_id: uuid.UUID


@dataclass(frozen=True)
class SessionResolution:
    outcome: SessionOutcome
    token: str | None = None
    user: UserModel | None = None

    @property
    def user_id(self) -> uuid.UUID | None:
        return self.user.id if self.user is not None else None

    @property
    def current(self) -> CurrentUser | None:
        if self.user is None:
            return None
        return CurrentUser(user=self.user, user_id=self.user.id)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_user_service() -> UserService:
    return _user_service


async def _resolve(
    request: Request,
    settings: Settings,
    store: SessionStore,
    db: AsyncSession,
    users: UserService,
) -> SessionResolution:
    # Policies and the rate limiter all ask; look the session up once per request
    cached = getattr(request.state, "session_resolution", None)
    if cached is not None:
        return cached

    resolution = await _lookup(request, settings, store, db, users)
    request.state.session_resolution = resolution
    return resolution


async def _lookup(
    request: Request,
    settings: Settings,
    store: SessionStore,
    db: AsyncSession,
    users: UserService,
) -> SessionResolution:
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        return SessionResolution(SessionOutcome.NO_COOKIE)

    try:
        user_id = await store.get(token)
    except SessionNotFoundError:
        return SessionResolution(SessionOutcome.INVALID_SESSION, token=token)

    try:
        user = await users.get(db, user_id)
    except UserNotFoundError:
        logger.info("session references missing user %s", user_id)
        return SessionResolution(SessionOutcome.USER_VANISHED, token=token)
    except (SQLAlchemyError, OSError) as exc:
        logger.error("user lookup for session failed: %s", exc)
        raise BackendUnavailableError("auth.user_lookup") from exc

    return SessionResolution(SessionOutcome.AUTHENTICATED, token=token, user=user)


async def resolve_session(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    store: Annotated[SessionStore, Depends(get_session_store)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    users: Annotated[UserService, Depends(get_user_service)],
) -> SessionResolution:
    """Resolve the request's session cookie. Backend failures propagate (503)."""
    return await _resolve(request, settings, store, db, users)


async def _drop_orphan(store: SessionStore, resolution: SessionResolution) -> None:
    if resolution.token:
        await store.delete(resolution.token)


async def require_user_page(
    resolution: Annotated[SessionResolution, Depends(resolve_session)],
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> CurrentUser:
    """Browser policy: redirect to the login page unless signed in."""
    current = resolution.current
    if current is not None:
        return current

    if resolution.outcome is SessionOutcome.USER_VANISHED:
        await _drop_orphan(store, resolution)
        raise LoginRedirect(clear_cookie=True)
    raise LoginRedirect()


async def require_user_api(
    resolution: Annotated[SessionResolution, Depends(resolve_session)],
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> CurrentUser:
    """API policy: structured 401 unless signed in."""
    current = resolution.current
    if current is not None:
        return current

    if resolution.outcome is SessionOutcome.USER_VANISHED:
        await _drop_orphan(store, resolution)
        raise AuthenticationRequiredError(clear_cookie=True)
    raise AuthenticationRequiredError()


async def optional_user(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    store: Annotated[SessionStore, Depends(get_session_store)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    users: Annotated[UserService, Depends(get_user_service)],
) -> CurrentUser | None:
    """Optional policy: the caller's identity if signed in, else None. Never blocks."""
    try:
        resolution = await _resolve(request, settings, store, db, users)
    except BackendUnavailableError as exc:
        logger.warning("optional auth skipped, %s unavailable", exc.operation)
        return None
    return resolution.current
