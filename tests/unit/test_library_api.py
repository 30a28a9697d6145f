"""HTTP-level tests for /api/v1/movies and /api/v1/series.

The real router -> service -> repository chain runs against a MagicMock
AsyncSession whose execute() results are scripted per test.
"""

import uuid
from datetime import UTC, date, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from httpx import AsyncClient
from sqlalchemy.exc import IntegrityError, OperationalError


def _row(user_id: uuid.UUID, **kwargs) -> MagicMock:
    row = MagicMock()
    row.id = kwargs.get("id", uuid.uuid4())
    row.tmdb_id = kwargs.get("tmdb_id", 603)
    row.title = kwargs.get("title", "The Matrix")
    row.poster_path = kwargs.get("poster_path", "/matrix.jpg")
    row.air_date = kwargs.get("air_date", date(1999, 3, 31))
    row.tmdb_score = Decimal(str(kwargs.get("tmdb_score", 8.2)))
    row.score = Decimal(str(kwargs.get("score", 0.0)))
    row.watched = kwargs.get("watched", False)
    row.user_id = user_id
    row.created_at = datetime.now(UTC)
    row.updated_at = datetime.now(UTC)
    return row


def _result(fetchone=None, fetchall=None, scalar=None, rowcount=None) -> MagicMock:
    result = MagicMock()
    result.fetchone.return_value = fetchone
    result.fetchall.return_value = fetchall or []
    result.scalar_one.return_value = scalar
    result.rowcount = rowcount
    return result


MATRIX = {
    "tmdb_id": 603,
    "title": "The Matrix",
    "poster_path": "/matrix.jpg",
    "release_date": "1999-03-31",
    "tmdb_score": 8.2,
}


class TestAuthRequired:
    async def test_movies_require_session(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/movies")
        assert resp.status_code == 401
        assert resp.json()["code"] == 1001

    async def test_series_require_session(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/series", json={"tmdb_id": 1, "title": "x"})
        assert resp.status_code == 401


class TestCreate:
    async def test_created(self, client: AsyncClient, signed_in, db) -> None:
        user, _ = signed_in
        db.execute = AsyncMock(return_value=_result(fetchone=_row(user.id)))

        resp = await client.post("/api/v1/movies", json=MATRIX)

        assert resp.status_code == 201
        body = resp.json()
        assert body["message"] == "Movie added to your library!"
        assert body["data"]["title"] == "The Matrix"
        assert body["data"]["release_date"] == "1999-03-31"
        assert body["data"]["score"] == 0.0
        assert body["data"]["user_id"] == str(user.id)
        db.commit.assert_awaited_once()

    async def test_duplicate_is_409(self, client: AsyncClient, signed_in, db) -> None:
        orig = Exception("duplicate key")
        orig.sqlstate = "23505"
        db.execute = AsyncMock(side_effect=IntegrityError("INSERT", {}, orig))

        resp = await client.post("/api/v1/movies", json=MATRIX)

        assert resp.status_code == 409
        assert resp.json()["code"] == 2002
        assert resp.json()["message"] == "Movie already in your library"
        db.commit.assert_not_awaited()

    async def test_serie_uses_first_aired(self, client: AsyncClient, signed_in, db) -> None:
        user, _ = signed_in
        row = _row(user.id, tmdb_id=1399, title="Game of Thrones", air_date=date(2011, 4, 17))
        db.execute = AsyncMock(return_value=_result(fetchone=row))

        resp = await client.post(
            "/api/v1/series",
            json={"tmdb_id": 1399, "title": "Game of Thrones", "first_aired": "2011-04-17"},
        )

        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["first_aired"] == "2011-04-17"
        assert "release_date" not in data
        assert resp.json()["message"] == "Serie added to your library!"

    async def test_validation(self, client: AsyncClient, signed_in) -> None:
        resp = await client.post("/api/v1/movies", json={**MATRIX, "tmdb_score": 11})
        assert resp.status_code == 422


class TestList:
    async def test_page_envelope(self, client: AsyncClient, signed_in, db) -> None:
        user, _ = signed_in
        rows = [_row(user.id, title="The Matrix"), _row(user.id, title="The Matrix Reloaded")]
        db.execute = AsyncMock(side_effect=[_result(scalar=2), _result(fetchall=rows)])

        resp = await client.get("/api/v1/movies", params={"query": "matrix"})

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["page"] == 1
        assert data["count"] == 2
        assert data["total_pages"] == 1
        assert [r["title"] for r in data["results"]] == ["The Matrix", "The Matrix Reloaded"]

    async def test_out_of_range_paging_normalized(self, client: AsyncClient, signed_in, db) -> None:
        db.execute = AsyncMock(side_effect=[_result(scalar=0), _result(fetchall=[])])

        resp = await client.get("/api/v1/series", params={"page": -3, "limit": 500})

        data = resp.json()["data"]
        assert data == {"results": [], "page": 1, "count": 0, "total_pages": 0}
        list_params = db.execute.call_args_list[1].args[1]
        assert list_params["limit"] == 27
        assert list_params["offset"] == 0

    async def test_scoped_to_caller(self, client: AsyncClient, signed_in, db) -> None:
        user, _ = signed_in
        db.execute = AsyncMock(side_effect=[_result(scalar=0), _result(fetchall=[])])

        await client.get("/api/v1/movies", params={"watched": "true"})

        count_params = db.execute.call_args_list[0].args[1]
        assert count_params["user_id"] == user.id
        assert count_params["watched"] is True


class TestSingleItem:
    async def test_get(self, client: AsyncClient, signed_in, db) -> None:
        user, _ = signed_in
        row = _row(user.id)
        db.execute = AsyncMock(return_value=_result(fetchone=row))

        resp = await client.get(f"/api/v1/movies/{row.id}")

        assert resp.status_code == 200
        assert resp.json()["data"]["id"] == str(row.id)

    async def test_get_missing(self, client: AsyncClient, signed_in, db) -> None:
        db.execute = AsyncMock(return_value=_result(fetchone=None))
        resp = await client.get(f"/api/v1/movies/{uuid.uuid4()}")
        assert resp.status_code == 404
        assert resp.json()["code"] == 2001

    async def test_bad_id_is_422(self, client: AsyncClient, signed_in) -> None:
        resp = await client.get("/api/v1/movies/not-a-uuid")
        assert resp.status_code == 422

    async def test_patch(self, client: AsyncClient, signed_in, db) -> None:
        user, _ = signed_in
        row = _row(user.id, score=9.0, watched=True)
        db.execute = AsyncMock(return_value=_result(fetchone=row))

        resp = await client.patch(f"/api/v1/movies/{row.id}", json={"score": 9.0, "watched": True})

        assert resp.status_code == 200
        assert resp.json()["data"]["score"] == 9.0
        assert resp.json()["data"]["watched"] is True
        db.commit.assert_awaited_once()

    async def test_patch_missing(self, client: AsyncClient, signed_in, db) -> None:
        db.execute = AsyncMock(return_value=_result(fetchone=None))
        resp = await client.patch(f"/api/v1/series/{uuid.uuid4()}", json={"watched": True})
        assert resp.status_code == 404

    async def test_delete(self, client: AsyncClient, signed_in, db) -> None:
        db.execute = AsyncMock(return_value=_result(rowcount=1))
        resp = await client.delete(f"/api/v1/series/{uuid.uuid4()}")
        assert resp.status_code == 200
        assert resp.json()["message"] == "Serie removed from your library"

    async def test_delete_missing(self, client: AsyncClient, signed_in, db) -> None:
        db.execute = AsyncMock(return_value=_result(rowcount=0))
        resp = await client.delete(f"/api/v1/movies/{uuid.uuid4()}")
        assert resp.status_code == 404


class TestDatabaseFailure:
    async def test_query_failure_is_503(self, client: AsyncClient, signed_in, db) -> None:
        db.execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("down")))

        resp = await client.get("/api/v1/movies")

        assert resp.status_code == 503
        assert resp.json()["code"] == 9003
        assert resp.json()["data"] is None

    async def test_commit_failure_is_503(self, client: AsyncClient, signed_in, db) -> None:
        db.execute = AsyncMock(return_value=_result(rowcount=1))
        db.commit = AsyncMock(side_effect=OperationalError("COMMIT", {}, Exception("down")))

        resp = await client.delete(f"/api/v1/movies/{uuid.uuid4()}")

        assert resp.status_code == 503
        assert resp.json()["code"] == 9003
