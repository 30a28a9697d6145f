"""Browser-facing routes.

Templates and the OAuth provider round-trip live outside this service; these
routes only carry the browser side of the session contract (redirects and
cookies).
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, RedirectResponse

from config.settings import Settings
from src.rs_gateway.auth.cookies import end_session
from src.rs_gateway.auth.dependencies import (
    CurrentUser,
    get_session_store,
    get_settings,
    require_user_page,
)
from src.rs_gateway.session.store import SessionStore

router = APIRouter(tags=["pages"], include_in_schema=False)


@router.get("/login", response_class=PlainTextResponse)
async def login_page() -> str:
    return "Sign in with Google or GitHub to continue."


@router.get("/auth/logout")
async def logout_page(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> RedirectResponse:
    response = RedirectResponse(settings.LOGIN_PATH, status_code=303)
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    await end_session(store, response, token, settings)
    return response


@router.get("/", response_class=PlainTextResponse)
async def home(current: Annotated[CurrentUser, Depends(require_user_page)]) -> str:
    return f"ReelScore - signed in as {current.user.name}"
