"""LibraryRepository: concrete implementation of LibraryRepositoryProtocol.

All queries use raw text() SQL (no ORM). One instance per MediaKind; the
table and date column come from the MediaKind constants, every value is a
bound parameter.
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
"""

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.rs_common.database import UniqueViolationError, constraint_name, is_unique_violation
from src.rs_common.errors import BackendUnavailableError
from src.rs_library.domain.models import LibraryItem, MediaKind

logger = logging.getLogger("rs.library")

# ---------------------------------------------------------------------------
# SQL templates
# ---------------------------------------------------------------------------

_COLUMNS = """
    id, tmdb_id, title, poster_path, {date_column} AS air_date,
    tmdb_score, score, watched, user_id, created_at, updated_at
"""

_FILTER = """
    WHERE user_id = :user_id
      AND watched = :watched
      AND (
          CAST(:pattern AS TEXT) IS NULL
          OR title ILIKE CAST(:pattern AS TEXT) ESCAPE '\\'
      )
"""

_COUNT_SQL = "SELECT COUNT(*) FROM {table}" + _FILTER

_LIST_SQL = (
    "SELECT" + _COLUMNS + "FROM {table}" + _FILTER
    + """
    ORDER BY tmdb_score DESC, created_at DESC, id
    LIMIT :limit OFFSET :offset
"""
)

_INSERT_SQL = """
    INSERT INTO {table} (
        tmdb_id, title, poster_path, {date_column},
        tmdb_score, score, watched, user_id
    )
    VALUES (
        :tmdb_id, :title, :poster_path, :air_date,
        :tmdb_score, :score, :watched, :user_id
    )
    RETURNING""" + _COLUMNS

_GET_SQL = (
    "SELECT" + _COLUMNS + """
    FROM {table}
    WHERE id = :item_id AND user_id = :user_id
"""
)

_UPDATE_SQL = """
    UPDATE {table}
    SET score = COALESCE(CAST(:score AS NUMERIC), score),
        watched = COALESCE(CAST(:watched AS BOOLEAN), watched),
        updated_at = NOW()
    WHERE id = :item_id AND user_id = :user_id
    RETURNING""" + _COLUMNS

_DELETE_SQL = """
    DELETE FROM {table}
    WHERE id = :item_id AND user_id = :user_id
"""


def like_pattern(query: str | None) -> str | None:
    """Turn free text into an ILIKE substring pattern with wildcards escaped.

    Only an absent or empty query disables the filter; the text is matched
    as given, surrounding whitespace included.
    """
    if not query:
        return None
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


@contextmanager
def _storage_errors(kind: MediaKind, op: str) -> Iterator[None]:
    """Report driver and connection failures as BackendUnavailableError."""
    try:
        yield
    except IntegrityError:
        raise
    except (SQLAlchemyError, OSError) as exc:
        logger.error("%s %s failed: %s", kind.table, op, exc)
        raise BackendUnavailableError(f"library.{op}") from exc


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------

def _row_to_item(row: object) -> LibraryItem:
    return LibraryItem(
        id=row.id,  # type: ignore[attr-defined]
        tmdb_id=row.tmdb_id,  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        poster_path=row.poster_path,  # type: ignore[attr-defined]
        air_date=row.air_date,  # type: ignore[attr-defined]
        tmdb_score=float(row.tmdb_score),  # type: ignore[attr-defined]
        score=float(row.score),  # type: ignore[attr-defined]
        watched=row.watched,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

class LibraryRepository:
    """User-scoped CRUD over one media table."""

    def __init__(self, kind: MediaKind) -> None:
        self.kind = kind
        names = {"table": kind.table, "date_column": kind.date_column}
        self._count_sql = text(_COUNT_SQL.format(**names))
        self._list_sql = text(_LIST_SQL.format(**names))
        self._insert_sql = text(_INSERT_SQL.format(**names))
        self._get_sql = text(_GET_SQL.format(**names))
        self._update_sql = text(_UPDATE_SQL.format(**names))
        self._delete_sql = text(_DELETE_SQL.format(**names))

    async def count(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        watched: bool,
        query: str | None,
    ) -> int:
        with _storage_errors(self.kind, "count"):
            result = await db.execute(
                self._count_sql,
                {"user_id": user_id, "watched": watched, "pattern": like_pattern(query)},
            )
        return int(result.scalar_one())

    async def list_page(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        watched: bool,
        query: str | None,
        limit: int,
        offset: int,
    ) -> list[LibraryItem]:
        with _storage_errors(self.kind, "list"):
            result = await db.execute(
                self._list_sql,
                {
                    "user_id": user_id,
                    "watched": watched,
                    "pattern": like_pattern(query),
                    "limit": limit,
                    "offset": offset,
                },
            )
        return [_row_to_item(row) for row in result.fetchall()]

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
    ) -> LibraryItem:
        """Insert one row.

        Raises:
            UniqueViolationError: (tmdb_id, user_id) already present.
            BackendUnavailableError: database unreachable.
        """
        with _storage_errors(self.kind, "insert"):
            try:
                result = await db.execute(
                    self._insert_sql,
                    {
                        "tmdb_id": tmdb_id,
                        "title": title,
                        "poster_path": poster_path,
                        "air_date": air_date,
                        "tmdb_score": tmdb_score,
                        "score": score,
                        "watched": watched,
                        "user_id": user_id,
                    },
                )
            except IntegrityError as exc:
                if is_unique_violation(exc):
                    raise UniqueViolationError(constraint_name(exc)) from exc
                raise
        return _row_to_item(result.fetchone())

    async def get(
        self, db: AsyncSession, item_id: uuid.UUID, user_id: uuid.UUID
    ) -> LibraryItem | None:
        with _storage_errors(self.kind, "get"):
            result = await db.execute(self._get_sql, {"item_id": item_id, "user_id": user_id})
        row = result.fetchone()
        return _row_to_item(row) if row else None

    async def update(
        self,
        db: AsyncSession,
        item_id: uuid.UUID,
        user_id: uuid.UUID,
        score: float | None,
        watched: bool | None,
    ) -> LibraryItem | None:
        with _storage_errors(self.kind, "update"):
            result = await db.execute(
                self._update_sql,
                {"item_id": item_id, "user_id": user_id, "score": score, "watched": watched},
            )
        row = result.fetchone()
        return _row_to_item(row) if row else None

    async def delete(
        self, db: AsyncSession, item_id: uuid.UUID, user_id: uuid.UUID
    ) -> bool:
        with _storage_errors(self.kind, "delete"):
            result = await db.execute(self._delete_sql, {"item_id": item_id, "user_id": user_id})
        return result.rowcount > 0
