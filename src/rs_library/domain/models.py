"""Domain models for rs_library: pure dataclasses, no business logic."""

import uuid
from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True)
class MediaKind:
    """Everything that differs between the movie and series libraries.

    ``table`` and ``date_column`` are interpolated into SQL and must only ever
    come from the constants below.
    """

    name: str           # "movie" | "serie"
    label: str          # user-facing noun, e.g. "Movie"
    table: str
    date_column: str


MOVIE = MediaKind(
    name="movie",
    label="Movie",
    table="movies",
    date_column="release_date",
)

SERIE = MediaKind(
    name="serie",
    label="Serie",
    table="series",
    date_column="first_aired",
)


@dataclass
class LibraryItem:
    id: uuid.UUID
    tmdb_id: int
    title: str
    poster_path: str | None
    air_date: date | None           # release date (movies) / first aired (series)
    tmdb_score: float
    score: float
    watched: bool
    user_id: uuid.UUID
    created_at: datetime
    updated_at: datetime


@dataclass
class NewLibraryItem:
    """Input for adding a catalog title to a user's library."""

    tmdb_id: int
    title: str
    tmdb_score: float
    watched: bool = False
    poster_path: str | None = None
    air_date: str | None = None     # raw "YYYY-MM-DD" as sent by the client
    score: float | None = None


@dataclass
class LibraryPage:
    results: list[LibraryItem]
    page: int
    count: int          # total matches before pagination
    total_pages: int
