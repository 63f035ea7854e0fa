from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query

from visitor_quota.core.auth import verify_admin_key
from visitor_quota.core.config import settings
from visitor_quota.core.rate_limit import get_coordinator, get_rate_limit_policy, require_visitor_id
from visitor_quota.schemas.rate_limit import (
    RateLimitResponse,
    StoredRecordView,
    VisitorDebugResponse,
)
from visitor_quota.services.rate_limit_coordinator import RateLimitCoordinator, RateLimitPolicy

router = APIRouter(tags=["Visitor"])


def ensure_debug_enabled() -> None:
    if not settings.app.debug_endpoint_enabled:
        raise HTTPException(status_code=404, detail="Not Found")


@router.get(
    "/debug/visitor",
    response_model=VisitorDebugResponse,
    dependencies=[Depends(ensure_debug_enabled), Depends(verify_admin_key)],
)
async def debug_visitor(
    coordinator: Annotated[RateLimitCoordinator, Depends(get_coordinator)],
    policy: Annotated[RateLimitPolicy, Depends(get_rate_limit_policy)],
    visitor_id: Annotated[str | None, Query(alias="visitorId")] = None,
) -> VisitorDebugResponse:
    """Show the stored quota record and current decision for a visitor.

    Store failures surface as 503 here instead of failing open, since this
    endpoint exists to inspect the store.
    """
    visitor_id = require_visitor_id(visitor_id)
    record = await coordinator.peek_record(visitor_id, policy.limit_key)
    decision = await coordinator.check_only(
        visitor_id,
        policy.limit_key,
        policy.max_requests,
        policy.window_ms,
    )

    return VisitorDebugResponse(
        visitor_id=visitor_id,
        limit_key=policy.limit_key,
        rate_limit=(
            StoredRecordView(count=record.count, timestamp=record.window_start)
            if record is not None
            else None
        ),
        decision=RateLimitResponse(allowed=decision.allowed, resets_at=decision.resets_at),
    )
