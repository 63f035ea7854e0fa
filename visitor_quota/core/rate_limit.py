"""Rate limiting dependencies for FastAPI routes.

Wires the coordinator built by the application factory into the HTTP layer.

- The coordinator (and the store client inside it) is created once per app
  and kept on ``app.state``; routes receive it through ``get_coordinator``.
- The quota policy is fixed per deployment and read from settings.
"""

from __future__ import annotations

import math
import time

from fastapi import Request, Response

from visitor_quota.core.config import settings
from visitor_quota.core.errors import ValidationAppError
from visitor_quota.services.rate_limit_coordinator import (
    RateLimitCoordinator,
    RateLimitDecision,
    RateLimitPolicy,
)


def get_coordinator(request: Request) -> RateLimitCoordinator:
    """Return the coordinator attached to the running application."""

    return request.app.state.coordinator


def get_rate_limit_policy() -> RateLimitPolicy:
    """Build the protected action's policy from configuration."""

    return RateLimitPolicy(
        limit_key=settings.rate_limit.limit_key,
        max_requests=settings.rate_limit.max_requests,
        window_ms=settings.rate_limit.window_ms,
    )


def require_visitor_id(visitor_id: str | None) -> str:
    """Validate the caller-supplied visitor id.

    Non-blank ids are forwarded verbatim; surrounding whitespace is part of
    the id and selects its own quota record.

    Raises:
        ValidationAppError: If the id is missing or blank.
    """

    if visitor_id is None or not visitor_id.strip():
        raise ValidationAppError(
            code="visitor_id_required",
            message="Visitor ID is required",
            details={"field": "visitorId"},
        )
    return visitor_id


def apply_rate_limit_headers(response: Response, decision: RateLimitDecision) -> None:
    """Attach X-RateLimit-* headers (and Retry-After when blocked).

    ``X-RateLimit-Reset`` is in epoch milliseconds, matching ``resetsAt``.
    """

    if not settings.rate_limit.include_headers:
        return

    response.headers["X-RateLimit-Limit"] = str(decision.limit)
    response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
    response.headers["X-RateLimit-Reset"] = str(decision.resets_at)

    if not decision.allowed:
        now_ms = int(time.time() * 1000)
        retry_after = max(0, math.ceil((decision.resets_at - now_ms) / 1000))
        response.headers["Retry-After"] = str(retry_after)
