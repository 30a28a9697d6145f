"""Access logging and request correlation.

Every request gets ``request.state.request_id = "req_<12 hex>"``; the same ID
is echoed in the ``X-Request-ID`` response header and in the ApiResponse
envelope. One line per request:

    INFO [GET] /api/v1/movies -> 200 (23ms) req_a1b2c3d4e5f6

Server errors are logged at WARNING. Health checks are not logged.
"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("rs.request")

REQUEST_ID_HEADER = "X-Request-ID"
_QUIET_PATHS = frozenset({"/health"})


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = f"req_{uuid.uuid4().hex[:12]}"
        request.state.request_id = request_id

        started = time.perf_counter()
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id

        path = request.url.path
        if path not in _QUIET_PATHS:
            # Path only: query strings may carry search text
            logger.log(
                logging.WARNING if response.status_code >= 500 else logging.INFO,
                "[%s] %s -> %d (%.0fms) %s",
                request.method,
                path,
                response.status_code,
                (time.perf_counter() - started) * 1000,
                request_id,
            )
        return response
