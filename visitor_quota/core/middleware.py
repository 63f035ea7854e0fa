"""Request correlation middleware.

Every request gets an id (taken from the incoming header when present) that
is visible to all log lines emitted while serving it and echoed back on the
response together with the handling time.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from visitor_quota.core.config import settings
from visitor_quota.core.logging import clear_request_id, set_request_id

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


async def request_id_middleware(request: Request, call_next) -> Response:
    """Bind a correlation id for the duration of the request.

    Returns:
        Response: The downstream response with the request id header (name
            from ``LOG_REQUEST_ID_HEADER``) and ``X-Request-Duration-ms``.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    except Exception:
        logger.exception(
            "request.failed",
            extra={"method": request.method, "path": request.url.path, "duration_ms": _elapsed_ms(start)},
        )
        raise
    else:
        duration_ms = _elapsed_ms(start)
        logger.info(
            "request.completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
