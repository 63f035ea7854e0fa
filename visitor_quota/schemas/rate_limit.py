"""Pydantic schemas for the rate-limit and visitor debug endpoints."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RateLimitRequest(BaseModel):
    """Body of ``POST /rate-limit``.

    ``visitorId`` is optional at the schema level so a missing id produces the
    service's own 400 error instead of a generic validation error.
    """

    visitor_id: str | None = Field(
        default=None,
        alias="visitorId",
        description="Visitor identity resolved by the client.",
    )

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class RateLimitResponse(BaseModel):
    """Quota decision returned by both rate-limit endpoints."""

    allowed: bool = Field(..., description="Whether the visitor may proceed.")
    resets_at: int = Field(
        ...,
        alias="resetsAt",
        description="Epoch milliseconds when the current window ends.",
    )

    model_config = ConfigDict(populate_by_name=True)


class StoredRecordView(BaseModel):
    count: int
    timestamp: int


class VisitorDebugResponse(BaseModel):
    """Operator view of a visitor's stored quota state."""

    visitor_id: str = Field(..., alias="visitorId")
    limit_key: str = Field(..., alias="limitKey")
    rate_limit: StoredRecordView | None = Field(
        default=None,
        alias="rateLimit",
        description="Raw stored record, or null if absent or malformed.",
    )
    decision: RateLimitResponse

    model_config = ConfigDict(populate_by_name=True)
