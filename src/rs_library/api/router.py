"""rs_library REST endpoints, built once per media kind.

GET    /movies            paginated list (watched flag, title search)
POST   /movies            add a catalog title (409 if already present)
GET    /movies/{item_id}  one item owned by the caller
PATCH  /movies/{item_id}  partial update of score / watched
DELETE /movies/{item_id}  remove from the library

/series exposes the same routes. Every route is rate limited and requires a
session (JSON 401 otherwise).
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.rs_common.database import get_db_session
from src.rs_common.response import ApiResponse, success_response
from src.rs_gateway.auth.dependencies import CurrentUser, require_user_api
from src.rs_gateway.middleware.rate_limit import enforce_rate_limit
from src.rs_library.application.schemas import (
    MOVIE_SCHEMAS,
    SERIE_SCHEMAS,
    KindSchemas,
    UpdateItemRequest,
)
from src.rs_library.application.service import DEFAULT_PAGE_SIZE, LibraryService
from src.rs_library.domain.models import MOVIE, SERIE, MediaKind


def build_library_router(
    kind: MediaKind,
    schemas: KindSchemas,
    prefix: str,
    service: LibraryService | None = None,
) -> APIRouter:
    router = APIRouter(
        prefix=prefix,
        tags=[prefix.strip("/")],
        dependencies=[Depends(enforce_rate_limit)],
    )
    svc = service or LibraryService(kind)
    create_schema = schemas.create

    @router.get("", response_model=ApiResponse)
    async def list_items(
        request: Request,
        current: Annotated[CurrentUser, Depends(require_user_api)],
        db: Annotated[AsyncSession, Depends(get_db_session)],
        watched: bool = Query(False, description="true: watched list, false: watchlist"),
        query: str | None = Query(None, description="Case-insensitive title search"),
        page: int = Query(1, description="1-based; values < 1 mean 1"),
        limit: int = Query(DEFAULT_PAGE_SIZE, description="1..100; other values mean 27"),
    ) -> ApiResponse:
        result = await svc.list_items(db, current.user_id, watched, query, page, limit)
        return success_response(schemas.page_out(result).model_dump(), request)

    @router.post("", status_code=status.HTTP_201_CREATED, response_model=ApiResponse)
    async def create_item(
        request: Request,
        body: create_schema,  # type: ignore[valid-type]
        current: Annotated[CurrentUser, Depends(require_user_api)],
        db: Annotated[AsyncSession, Depends(get_db_session)],
    ) -> ApiResponse:
        item = await svc.create_item(db, current.user_id, body.to_domain())
        await db.commit()

        return success_response(
            schemas.out.from_domain(item).model_dump(),
            request,
            message=f"{kind.label} added to your library!",
        )

    @router.get("/{item_id}", response_model=ApiResponse)
    async def get_item(
        item_id: uuid.UUID,
        request: Request,
        current: Annotated[CurrentUser, Depends(require_user_api)],
        db: Annotated[AsyncSession, Depends(get_db_session)],
    ) -> ApiResponse:
        item = await svc.get_item(db, item_id, current.user_id)
        return success_response(schemas.out.from_domain(item).model_dump(), request)

    @router.patch("/{item_id}", response_model=ApiResponse)
    async def update_item(
        item_id: uuid.UUID,
        request: Request,
        body: UpdateItemRequest,
        current: Annotated[CurrentUser, Depends(require_user_api)],
        db: Annotated[AsyncSession, Depends(get_db_session)],
    ) -> ApiResponse:
        item = await svc.update_item(
            db, current.user_id, item_id, score=body.score, watched=body.watched
        )
        await db.commit()
        return success_response(schemas.out.from_domain(item).model_dump(), request)

    @router.delete("/{item_id}", response_model=ApiResponse)
    async def delete_item(
        item_id: uuid.UUID,
        request: Request,
        current: Annotated[CurrentUser, Depends(require_user_api)],
        db: Annotated[AsyncSession, Depends(get_db_session)],
    ) -> ApiResponse:
        await svc.delete_item(db, item_id, current.user_id)
        await db.commit()

        return success_response(
            None, request, message=f"{kind.label} removed from your library"
        )

    return router


movies_router = build_library_router(MOVIE, MOVIE_SCHEMAS, "/movies")
series_router = build_library_router(SERIE, SERIE_SCHEMAS, "/series")
