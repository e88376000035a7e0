import logging
import time
from typing import Optional
from uuid import uuid4

from fastapi import Request
from fastapi.responses import JSONResponse

from fleetdesk.config import settings

logger = logging.getLogger("fleetdesk.api")

IMPORTS_PREFIX = "/imports"


def _content_length(request: Request) -> int:
    try:
        return int(request.headers.get("content-length") or 0)
    except ValueError:
        return 0


def _import_date(request: Request) -> Optional[str]:
    """Date an import request targets: ``?date=`` on uploads, the path tail on ``GET /imports/{date}``."""
    path = request.url.path
    if not path.startswith(IMPORTS_PREFIX):
        return None
    if request.query_params.get("date"):
        return request.query_params["date"]
    tail = path[len(IMPORTS_PREFIX):].strip("/")
    if request.method == "GET" and tail:
        return tail
    return None


async def request_context(request: Request, call_next):
    """
    Tags every request with an id (echoed as ``x-request-id``), rejects oversized
    import bodies before they are read and writes one log line per request.
    """
    rid = request.headers.get("x-request-id") or uuid4().hex
    request.state.request_id = rid
    start = time.perf_counter()
    response = None
    try:
        limit_bytes = settings.security.max_upload_mb * 1024 * 1024
        if (
            request.method == "POST"
            and request.url.path.startswith(IMPORTS_PREFIX)
            and _content_length(request) > limit_bytes
        ):
            response = JSONResponse(
                status_code=413,
                content={
                    "error": "request_too_large",
                    "detail": f"Import payloads are limited to {settings.security.max_upload_mb}MB",
                    "request_id": rid,
                },
            )
        else:
            response = await call_next(request)
        response.headers["x-request-id"] = rid
        return response
    finally:
        if settings.logging.log_requests:
            logger.info(
                "request",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "import_date": _import_date(request),
                    "status": getattr(response, "status_code", "error"),
                    "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                    "request_id": rid,
                },
            )
