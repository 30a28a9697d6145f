"""Pydantic schemas for the movie and series library APIs.

Both libraries share every field except the air date, which is
``release_date`` for movies and ``first_aired`` for series.
"""

from dataclasses import dataclass

from pydantic import BaseModel, Field

from src.rs_library.domain.models import LibraryItem, LibraryPage, NewLibraryItem

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class _CreateItemBase(BaseModel):
    tmdb_id: int = Field(..., gt=0)
    title: str = Field(..., min_length=1, max_length=255)
    poster_path: str | None = Field(None, max_length=500)
    watched: bool = False
    tmdb_score: float = Field(0.0, ge=0, le=10)
    score: float | None = Field(None, ge=0, le=10)

    def _air_date(self) -> str | None:
        raise NotImplementedError

    def to_domain(self) -> NewLibraryItem:
        return NewLibraryItem(
            tmdb_id=self.tmdb_id,
            title=self.title,
            poster_path=self.poster_path,
            air_date=self._air_date(),
            tmdb_score=self.tmdb_score,
            score=self.score,
            watched=self.watched,
        )


class CreateMovieRequest(_CreateItemBase):
    release_date: str | None = None  # "YYYY-MM-DD"; unparseable -> stored as null

    def _air_date(self) -> str | None:
        return self.release_date


class CreateSerieRequest(_CreateItemBase):
    first_aired: str | None = None  # "YYYY-MM-DD"; unparseable -> stored as null

    def _air_date(self) -> str | None:
        return self.first_aired


class UpdateItemRequest(BaseModel):
    """Partial update: omitted fields keep their stored values."""

    score: float | None = Field(None, ge=0, le=10)
    watched: bool | None = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


def _base_fields(item: LibraryItem) -> dict[str, object]:
    return {
        "id": str(item.id),
        "tmdb_id": item.tmdb_id,
        "title": item.title,
        "poster_path": item.poster_path,
        "tmdb_score": item.tmdb_score,
        "score": item.score,
        "watched": item.watched,
        "user_id": str(item.user_id),
        "created_at": item.created_at.isoformat(),
        "updated_at": item.updated_at.isoformat(),
    }


class _ItemOutBase(BaseModel):
    id: str
    tmdb_id: int
    title: str
    poster_path: str | None
    tmdb_score: float
    score: float
    watched: bool
    user_id: str
    created_at: str
    updated_at: str


class MovieOut(_ItemOutBase):
    release_date: str | None

    @classmethod
    def from_domain(cls, item: LibraryItem) -> "MovieOut":
        return cls(
            **_base_fields(item),
            release_date=item.air_date.isoformat() if item.air_date else None,
        )


class SerieOut(_ItemOutBase):
    first_aired: str | None

    @classmethod
    def from_domain(cls, item: LibraryItem) -> "SerieOut":
        return cls(
            **_base_fields(item),
            first_aired=item.air_date.isoformat() if item.air_date else None,
        )


class LibraryPageOut(BaseModel):
    results: list[MovieOut] | list[SerieOut]
    page: int
    count: int
    total_pages: int


@dataclass(frozen=True)
class KindSchemas:
    """Request/response models a library router is built with."""

    create: type[_CreateItemBase]
    out: type[MovieOut] | type[SerieOut]

    def page_out(self, page: LibraryPage) -> LibraryPageOut:
        return LibraryPageOut(
            results=[self.out.from_domain(item) for item in page.results],
            page=page.page,
            count=page.count,
            total_pages=page.total_pages,
        )


MOVIE_SCHEMAS = KindSchemas(create=CreateMovieRequest, out=MovieOut)
SERIE_SCHEMAS = KindSchemas(create=CreateSerieRequest, out=SerieOut)
