"""Session cookie helpers.

Cookie contract: Path=/, Max-Age=<session TTL> (7 days by default), HttpOnly,
SameSite=Lax, Secure only in production so plain-HTTP local testing works.

The Set-Cookie header is written by hand: tokens are padded base64 and end
in ``=``, which ``Response.set_cookie`` would wrap in double quotes.
"""

import uuid

from starlette.responses import Response

from config.settings import Settings
from src.rs_gateway.session.store import SessionStore


def _append_cookie(response: Response, settings: Settings, value: str, max_age: int) -> None:
    parts = [
        f"{settings.SESSION_COOKIE_NAME}={value}",
        "Path=/",
        f"Max-Age={max_age}",
        "HttpOnly",
        "SameSite=Lax",
    ]
    if settings.is_production:
        parts.append("Secure")
    response.headers.append("set-cookie", "; ".join(parts))


def set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    _append_cookie(response, settings, token, settings.SESSION_TTL_SECONDS)


def clear_session_cookie(response: Response, settings: Settings) -> None:
    _append_cookie(response, settings, "", 0)


async def start_session(
    store: SessionStore,
    response: Response,
    user_id: uuid.UUID,
    settings: Settings,
) -> str:
    """Issue a fresh session for ``user_id`` and attach its cookie. Returns the token."""
    token = store.generate_id()
    await store.set(token, user_id)
    set_session_cookie(response, token, settings)
    return token


async def end_session(
    store: SessionStore,
    response: Response,
    token: str | None,
    settings: Settings,
) -> None:
    """Drop the stored session (if any) and expire the client's cookie."""
    if token:
        await store.delete(token)
    clear_session_cookie(response, settings)
