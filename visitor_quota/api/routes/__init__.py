from __future__ import annotations

from visitor_quota.api.routes.health import router as health_router
from visitor_quota.api.routes.rate_limit import router as rate_limit_router
from visitor_quota.api.routes.visitor import router as visitor_router

__all__ = ["health_router", "rate_limit_router", "visitor_router"]
