from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from visitor_quota.core.rate_limit import get_coordinator
from visitor_quota.services.rate_limit_coordinator import RateLimitCoordinator

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(
    coordinator: Annotated[RateLimitCoordinator, Depends(get_coordinator)],
) -> dict:
    """Liveness check; never touches the key-value store.

    ``enforcing`` is false when quota checks always allow (no store configured
    or enforcement disabled), which is worth alerting on.
    """

    return {"status": "ok", "enforcing": coordinator.active}
