"""Async engine / session factory construction and storage error classification.

The engine and session factory are built by the application lifespan and held
on ``app.state``; nothing here opens a pool at import time.
"""

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from config.settings import Settings

# PostgreSQL SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models across modules."""

    pass


class UniqueViolationError(Exception):
    """A UNIQUE constraint rejected an INSERT/UPDATE."""

    def __init__(self, constraint: str | None = None) -> None:
        self.constraint = constraint
        super().__init__(f"unique violation: {constraint or 'unknown constraint'}")


def is_unique_violation(exc: IntegrityError) -> bool:
    """Classify by SQLSTATE, not by message text.

    asyncpg exposes ``sqlstate``; the SQLAlchemy adapter mirrors it as ``pgcode``.
    """
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return code == UNIQUE_VIOLATION


def constraint_name(exc: IntegrityError) -> str | None:
    orig = exc.orig
    name = getattr(orig, "constraint_name", None)
    if name is None:
        # SQLAlchemy's asyncpg adapter keeps the driver exception in __cause__
        name = getattr(getattr(orig, "__cause__", None), "constraint_name", None)
    return name


def create_engine(settings: Settings) -> AsyncEngine:
    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: yields an AsyncSession, auto-closes after request."""
    factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with factory() as session:
        yield session
