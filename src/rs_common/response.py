"""Envelope shared by every JSON endpoint, success or failure.

    {"code": 0, "message": "success", "data": {...},
     "timestamp": "<ISO-8601 UTC>", "request_id": "req_<12 hex>"}

``code`` is 0 on success and the AppError code otherwise; ``data`` is null
on errors. The request_id is taken from request.state when the request log
middleware has assigned one, so the envelope and the access log line agree.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from fastapi import Request
from pydantic import BaseModel, Field

from src.rs_common.errors import AppError


def _new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=_new_request_id)


def _request_id(request: Request | None) -> str:
    if request is None:
        return _new_request_id()
    return getattr(request.state, "request_id", None) or _new_request_id()


def success_response(
    data: Any = None,
    request: Request | None = None,
    message: str = "success",
) -> ApiResponse:
    return ApiResponse(code=0, message=message, data=data, request_id=_request_id(request))


def error_response(exc: AppError, request: Request | None = None) -> ApiResponse:
    return ApiResponse(
        code=exc.code,
        message=exc.message,
        data=None,
        request_id=_request_id(request),
    )
