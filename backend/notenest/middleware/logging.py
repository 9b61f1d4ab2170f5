"""
NoteNest Backend — Request Logging Middleware
==============================================

What:  One access log line per HTTP request on the "notenest.access" logger.
How:   Times call_next() and logs method, path, status, duration, request id
       and caller. The same fields go into `extra` for structured handlers.

Logged:     method, path, status, duration, request ID, user id, IP
Not logged: request bodies (document content can be large and private)

Editor autosaves and image fetches are frequent, so successful
PUT .../content and GET /api/files/... requests are logged at DEBUG.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from notenest.config import settings
from notenest.middleware.request_id import request_id_var

logger = logging.getLogger("notenest.access")

QUIET_PATHS = {"/health"}


def _is_chatty(method: str, path: str) -> bool:
    if method == "GET" and path.startswith(settings.files_url_prefix + "/"):
        return True
    return method == "PUT" and path.endswith("/content")


def _level_for(status: int, chatty: bool) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.DEBUG if chatty else logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """5xx → ERROR, 4xx → WARNING, other → INFO (DEBUG for chatty paths)."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000

        fields = {
            "request_id": request_id_var.get(""),
            "method": request.method,
            "path": path,
            "status": response.status_code,
            "duration_ms": round(duration_ms, 2),
            "user_id": request.headers.get(settings.user_header) or "-",
            "client_ip": request.client.host if request.client else "unknown",
        }
        logger.log(
            _level_for(response.status_code, _is_chatty(request.method, path)),
            "%(method)s %(path)s %(status)d %(duration_ms).1fms [%(request_id)s] user=%(user_id)s from %(client_ip)s",
            fields,
            extra=fields,
        )
        return response
