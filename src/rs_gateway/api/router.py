"""Auth and profile API routers.

POST   /auth/logout    end the session (JSON)
GET    /auth/session   who am I, without requiring a session
GET    /users/me       profile of the signed-in user
PATCH  /users/me       edit email / display name
DELETE /users/me       delete the account and everything in its library

All endpoints return ApiResponse. request_id is read from request.state
(injected by RequestLogMiddleware).
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import Settings
from src.rs_common.database import get_db_session
from src.rs_common.response import ApiResponse, success_response
from src.rs_gateway.auth.cookies import end_session
from src.rs_gateway.auth.dependencies import (
    CurrentUser,
    get_session_store,
    get_settings,
    get_user_service,
    optional_user,
    require_user_api,
)
from src.rs_gateway.middleware.rate_limit import enforce_rate_limit
from src.rs_gateway.session.store import SessionStore
from src.rs_gateway.user.schemas import SessionStatus, UpdateProfileRequest, UserProfile
from src.rs_gateway.user.service import UserService

auth_router = APIRouter(prefix="/auth", tags=["auth"])
users_router = APIRouter(
    prefix="/users",
    tags=["users"],
    dependencies=[Depends(enforce_rate_limit)],
)


@auth_router.post("/logout", response_model=ApiResponse, summary="Sign out")
async def logout(
    request: Request,
    response: Response,
    settings: Annotated[Settings, Depends(get_settings)],
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> ApiResponse:
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    await end_session(store, response, token, settings)

    return success_response(None, request, message="Signed out")


@auth_router.get("/session", response_model=ApiResponse, summary="Current session")
async def session_status(
    request: Request,
    current: Annotated[CurrentUser | None, Depends(optional_user)],
) -> ApiResponse:
    data = SessionStatus(
        authenticated=current is not None,
        user=UserProfile.from_model(current.user) if current else None,
    )
    return success_response(data.model_dump(), request)


@users_router.get("/me", response_model=ApiResponse, summary="My profile")
async def get_profile(
    request: Request,
    current: Annotated[CurrentUser, Depends(require_user_api)],
) -> ApiResponse:
    return success_response(UserProfile.from_model(current.user).model_dump(), request)


@users_router.patch("/me", response_model=ApiResponse, summary="Edit my profile")
async def update_profile(
    request: Request,
    body: UpdateProfileRequest,
    current: Annotated[CurrentUser, Depends(require_user_api)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    users: Annotated[UserService, Depends(get_user_service)],
) -> ApiResponse:
    user = await users.update(db, current.user_id, email=body.email, name=body.name)
    await db.commit()
    return success_response(UserProfile.from_model(user).model_dump(), request)


@users_router.delete("/me", response_model=ApiResponse, summary="Delete my account")
async def delete_account(
    request: Request,
    response: Response,
    current: Annotated[CurrentUser, Depends(require_user_api)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    users: Annotated[UserService, Depends(get_user_service)],
    settings: Annotated[Settings, Depends(get_settings)],
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> ApiResponse:
    await users.delete(db, current.user_id)
    await db.commit()
    await end_session(store, response, request.cookies.get(settings.SESSION_COOKIE_NAME), settings)

    return success_response(None, request, message="Account deleted")
