from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response

from visitor_quota.core.rate_limit import (
    apply_rate_limit_headers,
    get_coordinator,
    get_rate_limit_policy,
    require_visitor_id,
)
from visitor_quota.schemas.rate_limit import RateLimitRequest, RateLimitResponse
from visitor_quota.services.rate_limit_coordinator import RateLimitCoordinator, RateLimitPolicy

router = APIRouter(tags=["RateLimit"])


@router.get("/rate-limit", response_model=RateLimitResponse)
async def check_rate_limit(
    response: Response,
    coordinator: Annotated[RateLimitCoordinator, Depends(get_coordinator)],
    policy: Annotated[RateLimitPolicy, Depends(get_rate_limit_policy)],
    visitor_id: Annotated[
        str | None,
        Query(alias="visitorId", description="Visitor identity resolved by the client."),
    ] = None,
) -> RateLimitResponse:
    """Report whether the visitor may proceed, without consuming quota.

    Returns:
        RateLimitResponse: ``allowed`` and ``resetsAt`` (epoch ms).

    Raises:
        ValidationAppError: 400 if ``visitorId`` is missing.
    """
    decision = await coordinator.check_only(
        require_visitor_id(visitor_id),
        policy.limit_key,
        policy.max_requests,
        policy.window_ms,
    )
    apply_rate_limit_headers(response, decision)
    return RateLimitResponse(allowed=decision.allowed, resets_at=decision.resets_at)


@router.post("/rate-limit", response_model=RateLimitResponse)
async def consume_rate_limit(
    response: Response,
    coordinator: Annotated[RateLimitCoordinator, Depends(get_coordinator)],
    policy: Annotated[RateLimitPolicy, Depends(get_rate_limit_policy)],
    payload: RateLimitRequest | None = None,
) -> RateLimitResponse:
    """Consume one unit of the visitor's quota.

    A blocked visitor still gets 200 with ``allowed: false``; only a missing
    visitor id is a client error.
    """
    visitor_id = require_visitor_id(payload.visitor_id if payload else None)
    decision = await coordinator.check_and_increment(
        visitor_id,
        policy.limit_key,
        policy.max_requests,
        policy.window_ms,
    )
    apply_rate_limit_headers(response, decision)
    return RateLimitResponse(allowed=decision.allowed, resets_at=decision.resets_at)
