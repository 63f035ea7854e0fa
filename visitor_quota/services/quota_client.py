"""Client for the rate-limit HTTP endpoint.

Runs in the client process next to the ``VisitorResolver``: it resolves the
visitor id and asks the service to check or consume quota. Any failure
(transport error, unexpected status, malformed body) fails open so the
calling application can always proceed.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from visitor_quota.core.logging import hash_identifier
from visitor_quota.services.rate_limit_coordinator import RateLimitDecision
from visitor_quota.services.visitor_resolver import VisitorResolver

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_MS = 24 * 60 * 60 * 1000
RATE_LIMIT_PATH = "/rate-limit"


class _DecisionPayload(BaseModel):
    allowed: bool
    resets_at: int = Field(..., alias="resetsAt")

    model_config = ConfigDict(populate_by_name=True)


class QuotaClient:
    """Check or consume the current visitor's quota over HTTP."""

    def __init__(
        self,
        base_url: str,
        resolver: VisitorResolver,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 5.0,
        default_window_ms: int = DEFAULT_WINDOW_MS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Root URL of the quota service.
            resolver: Resolver providing the visitor identity.
            http_client: Optional pre-built client (owned by the caller).
            timeout_seconds: Request timeout when the client builds its own.
            default_window_ms: Window used for fail-open ``resets_at``.
            clock: Time source returning UNIX time in seconds.
        """
        self._resolver = resolver
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout_seconds)
        self._default_window_ms = default_window_ms
        self._clock = clock

    async def __aenter__(self) -> "QuotaClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def check(self) -> RateLimitDecision:
        """Ask whether the visitor may proceed, without consuming quota."""
        identity = await self._resolver.resolve()
        return await self._call("GET", visitor_id=identity.id)

    async def increment(self) -> RateLimitDecision:
        """Consume one unit of the visitor's quota."""
        identity = await self._resolver.resolve()
        return await self._call("POST", visitor_id=identity.id)

    async def _call(self, method: str, *, visitor_id: str) -> RateLimitDecision:
        try:
            if method == "GET":
                response = await self._http.get(RATE_LIMIT_PATH, params={"visitorId": visitor_id})
            else:
                response = await self._http.post(RATE_LIMIT_PATH, json={"visitorId": visitor_id})
            response.raise_for_status()
            payload = _DecisionPayload.model_validate(response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as exc:
            logger.warning(
                "quota_client.fail_open",
                extra={
                    "method": method,
                    "visitor_hash": hash_identifier(visitor_id),
                    "error_type": type(exc).__name__,
                },
            )
            return self._fail_open()

        return RateLimitDecision(
            allowed=payload.allowed,
            resets_at=payload.resets_at,
            limit=_int_header(response, "X-RateLimit-Limit", default=0),
            remaining=_int_header(response, "X-RateLimit-Remaining", default=0),
        )

    def _fail_open(self) -> RateLimitDecision:
        return RateLimitDecision(
            allowed=True,
            resets_at=int(self._clock() * 1000) + self._default_window_ms,
            limit=0,
            remaining=0,
        )


def _int_header(response: httpx.Response, name: str, *, default: int) -> int:
    try:
        return int(response.headers.get(name, default))
    except ValueError:
        return default
