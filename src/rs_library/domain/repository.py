"""Repository Protocol: dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
Every method takes the owning user; no statement may match another user's row.
"""

import uuid
from datetime import date
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.rs_library.domain.models import LibraryItem


class LibraryRepositoryProtocol(Protocol):
    async def count(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        watched: bool,
        query: str | None,
    ) -> int: ...

    async def list_page(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        watched: bool,
        query: str | None,
        limit: int,
        offset: int,
    ) -> list[LibraryItem]: ...

    async def insert(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        tmdb_id: int,
        title: str,
        poster_path: str | None,
        air_date: date | None,
        tmdb_score: float,
        score: float,
        watched: bool,
    ) -> LibraryItem: ...

    async def get(
        self,
        db: AsyncSession,
        item_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> LibraryItem | None: ...

    async def update(
        self,
        db: AsyncSession,
        item_id: uuid.UUID,
        user_id: uuid.UUID,
        score: float | None,
        watched: bool | None,
    ) -> LibraryItem | None: ...

    async def delete(
        self,
        db: AsyncSession,
        item_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> bool: ...
