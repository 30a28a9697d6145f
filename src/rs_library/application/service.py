"""LibraryService: user-scoped library CRUD, one instance per MediaKind.

The caller (router) passes the db session and commits after writes; the
service applies pagination defaults, parses dates and translates storage
outcomes into AppError subclasses.
"""

import logging
import uuid
from datetime import date, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.rs_common.database import UniqueViolationError
from src.rs_common.errors import LibraryItemExistsError, LibraryItemNotFoundError
from src.rs_library.domain.models import LibraryItem, LibraryPage, MediaKind, NewLibraryItem
from src.rs_library.domain.repository import LibraryRepositoryProtocol
from src.rs_library.infrastructure.persistence import LibraryRepository

logger = logging.getLogger("rs.library")

# 3 x 9 poster grid
DEFAULT_PAGE_SIZE = 27
MAX_PAGE_SIZE = 100


def normalize_paging(page: int, limit: int) -> tuple[int, int]:
    """page < 1 -> 1 (no upper clamp); limit outside [1, 100] -> 27."""
    if page < 1:
        page = 1
    if limit < 1 or limit > MAX_PAGE_SIZE:
        limit = DEFAULT_PAGE_SIZE
    return page, limit


def total_pages(count: int, limit: int) -> int:
    return (count + limit - 1) // limit


def parse_air_date(value: str | None) -> date | None:
    """Parse a catalog "YYYY-MM-DD" date; anything else is stored as NULL."""
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        return None


class LibraryService:
    def __init__(
        self,
        kind: MediaKind,
        repo: LibraryRepositoryProtocol | None = None,
    ) -> None:
        self.kind = kind
        self._repo: LibraryRepositoryProtocol = repo or LibraryRepository(kind)

    async def list_items(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        watched: bool,
        query: str | None,
        page: int,
        limit: int,
    ) -> LibraryPage:
        page, limit = normalize_paging(page, limit)
        offset = (page - 1) * limit

        count = await self._repo.count(db, user_id, watched, query)
        items = await self._repo.list_page(db, user_id, watched, query, limit, offset)
        return LibraryPage(
            results=items,
            page=page,
            count=count,
            total_pages=total_pages(count, limit),
        )

    async def create_item(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        new_item: NewLibraryItem,
    ) -> LibraryItem:
        score = new_item.score if new_item.score is not None else 0.0
        try:
            item = await self._repo.insert(
                db,
                user_id=user_id,
                tmdb_id=new_item.tmdb_id,
                title=new_item.title,
                poster_path=new_item.poster_path,
                air_date=parse_air_date(new_item.air_date),
                tmdb_score=new_item.tmdb_score,
                score=score,
                watched=new_item.watched,
            )
        except UniqueViolationError:
            logger.info(
                "%s tmdb_id=%s already in library of user %s",
                self.kind.name, new_item.tmdb_id, user_id,
            )
            raise LibraryItemExistsError(self.kind.label) from None
        return item

    async def get_item(
        self, db: AsyncSession, item_id: uuid.UUID, user_id: uuid.UUID
    ) -> LibraryItem:
        item = await self._repo.get(db, item_id, user_id)
        if item is None:
            raise LibraryItemNotFoundError(self.kind.label, str(item_id))
        return item

    async def update_item(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        item_id: uuid.UUID,
        score: float | None = None,
        watched: bool | None = None,
    ) -> LibraryItem:
        item = await self._repo.update(db, item_id, user_id, score, watched)
        if item is None:
            raise LibraryItemNotFoundError(self.kind.label, str(item_id))
        return item

    async def delete_item(
        self, db: AsyncSession, item_id: uuid.UUID, user_id: uuid.UUID
    ) -> None:
        if not await self._repo.delete(db, item_id, user_id):
            raise LibraryItemNotFoundError(self.kind.label, str(item_id))
