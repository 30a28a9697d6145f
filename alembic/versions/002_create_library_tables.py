"""002: movies and series library tables

Both tables share one layout; only the air-date column differs.

Revision ID: 002
Revises: 001
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# (table, air-date column, comment noun)
LIBRARY_TABLES = (
    ("movies", "release_date", "movie"),
    ("series", "first_aired", "serie"),
)


def upgrade() -> None:
    for table, date_column, noun in LIBRARY_TABLES:
        op.execute(f"""
            CREATE TABLE {table} (
                id              UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
                tmdb_id         INT             NOT NULL,
                title           VARCHAR(255)    NOT NULL,
                poster_path     VARCHAR(500),
                {date_column:<15} DATE,
                tmdb_score      NUMERIC(3, 1)   NOT NULL DEFAULT 0,
                score           NUMERIC(3, 1)   NOT NULL DEFAULT 0,
                watched         BOOLEAN         NOT NULL DEFAULT FALSE,
                user_id         UUID            NOT NULL
                    REFERENCES users (id) ON DELETE CASCADE,
                created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
                updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
                CONSTRAINT uq_{table}_tmdb_id_user_id UNIQUE (tmdb_id, user_id),
                CONSTRAINT ck_{table}_tmdb_score CHECK (tmdb_score BETWEEN 0 AND 10),
                CONSTRAINT ck_{table}_score CHECK (score BETWEEN 0 AND 10)
            );
        """)
        for column in ("user_id", "tmdb_id", "watched", "title"):
            op.execute(f"CREATE INDEX idx_{table}_{column} ON {table} ({column});")
        op.execute(f"""
            CREATE TRIGGER trg_{table}_updated_at
                BEFORE UPDATE ON {table}
                FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
        """)
        op.execute(f"COMMENT ON TABLE {table} IS 'Per-user {noun} library: watched list and watchlist';")


def downgrade() -> None:
    for table, _, _ in reversed(LIBRARY_TABLES):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE;")
