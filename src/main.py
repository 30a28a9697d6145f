"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 4000 --loop uvloop
      or: python -m src.main
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Annotated

import redis.asyncio as aioredis
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from config.settings import Settings, settings
from src.rs_common.database import create_engine, create_session_factory
from src.rs_common.errors import (
    AppError,
    AuthenticationRequiredError,
    BackendUnavailableError,
    LoginRedirect,
)
from src.rs_common.redis_client import close_redis, create_redis, get_redis
from src.rs_common.response import error_response
from src.rs_gateway.api.pages import router as pages_router
from src.rs_gateway.api.router import auth_router, users_router
from src.rs_gateway.auth.cookies import clear_session_cookie
from src.rs_gateway.middleware.rate_limit import RateLimiter
from src.rs_gateway.middleware.request_log import RequestLogMiddleware
from src.rs_gateway.session.store import SessionStore
from src.rs_library.api.router import movies_router, series_router

logger = logging.getLogger("rs.app")

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: build pools and verify DB + Redis. Shutdown: dispose."""
    cfg: Settings = app.state.settings

    engine = create_engine(cfg)
    redis = create_redis(cfg)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.redis = redis
    app.state.session_store = SessionStore(redis, cfg.SESSION_TTL_SECONDS)
    app.state.rate_limiter = RateLimiter(
        redis,
        max_requests=cfg.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=cfg.RATE_LIMIT_WINDOW_SECONDS,
        enabled=cfg.is_production,
    )
    if not cfg.is_production:
        logger.info("rate limiting disabled (APP_ENV=%s)", cfg.APP_ENV)

    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    await redis.ping()
    yield
    await engine.dispose()
    await close_redis(redis)


def create_app(cfg: Settings) -> FastAPI:
    app = FastAPI(
        title=cfg.APP_NAME,
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = cfg

    app.add_middleware(RequestLogMiddleware)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.http_status >= 500:
            logger.error(
                "[%s] %s failed: %s (%s)",
                request.method,
                request.url.path,
                exc.message,
                getattr(exc, "operation", "-"),
            )
        response = JSONResponse(
            status_code=exc.http_status,
            content=error_response(exc, request).model_dump(),
            headers=exc.headers,
        )
        if isinstance(exc, AuthenticationRequiredError) and exc.clear_cookie:
            clear_session_cookie(response, cfg)
        return response

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        # Commits and user writes reach the driver outside the repositories
        logger.error("database error: %s", exc)
        return await app_error_handler(request, BackendUnavailableError("database"))

    @app.exception_handler(LoginRedirect)
    async def login_redirect_handler(request: Request, exc: LoginRedirect) -> RedirectResponse:
        response = RedirectResponse(cfg.LOGIN_PATH, status_code=303)
        if exc.clear_cookie:
            clear_session_cookie(response, cfg)
        return response

    app.include_router(pages_router)
    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(users_router, prefix="/api/v1")
    app.include_router(movies_router, prefix="/api/v1")
    app.include_router(series_router, prefix="/api/v1")

    @app.get("/health")
    async def health(
        request: Request,
        redis: Annotated[aioredis.Redis, Depends(get_redis)],
    ) -> JSONResponse:
        database = "up"
        try:
            async with request.app.state.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as exc:
            logger.warning("health: database down: %s", type(exc).__name__)
            database = "down"

        cache = "up"
        try:
            await redis.ping()
        except (RedisError, OSError) as exc:
            logger.warning("health: redis down: %s", type(exc).__name__)
            cache = "down"

        healthy = database == "up" and cache == "up"
        return JSONResponse(
            status_code=200 if healthy else 503,
            content={
                "status": "ok" if healthy else "unhealthy",
                "version": VERSION,
                "database": database,
                "redis": cache,
            },
        )

    return app


app = create_app(settings)


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=4000,
        loop="uvloop",
        reload=settings.is_development,
    )
