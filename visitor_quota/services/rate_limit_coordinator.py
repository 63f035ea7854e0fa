"""Per-visitor quota enforcement over the shared key-value store.

Two operations share one evaluation step:
- ``check_only`` reports whether the visitor may proceed without writing.
- ``check_and_increment`` consumes one unit when allowed and persists it.

Updates are a plain get -> evaluate -> set sequence. Concurrent increments for
the same visitor and limit key can overwrite each other and under-count; there
is no atomic guard.

Store failures fail open: the caller is allowed and told the window resets
``window_ms`` from now.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable

from visitor_quota.adapters.store.base import AbstractKeyValueStore
from visitor_quota.core.errors import StoreUnavailableError, ValidationAppError
from visitor_quota.core.logging import hash_identifier
from visitor_quota.services.rate_limit_record import (
    RateLimitRecord,
    decode_record,
    encode_record,
    record_key,
    ttl_seconds,
)

logger = logging.getLogger(__name__)

# Failures talking to the store; all of them fail open.
_STORE_ERRORS = (StoreUnavailableError, asyncio.TimeoutError, OSError)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class RateLimitPolicy:
    """Quota applied to one protected action."""

    limit_key: str
    max_requests: int
    window_ms: int

    def __post_init__(self) -> None:
        if not self.limit_key:
            raise ValueError("limit_key must be a non-empty string")
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if self.window_ms < 1:
            raise ValueError("window_ms must be >= 1")


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a quota check.

    Attributes:
        allowed: Whether the visitor may proceed.
        resets_at: Epoch milliseconds when the current window ends.
        limit: Max requests per window.
        remaining: Units left in the current window after this call.
    """

    allowed: bool
    resets_at: int
    limit: int
    remaining: int


class RateLimitCoordinator:
    """Check and consume per-visitor quota stored in a key-value store."""

    def __init__(
        self,
        store: AbstractKeyValueStore | None,
        *,
        enabled: bool = True,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        """Initialize the coordinator.

        Args:
            store: Shared store client; None disables enforcement.
            enabled: When False every check is allowed without store access.
            clock: Time source returning epoch milliseconds.
        """
        self._store = store
        self._enabled = enabled
        self._clock = clock

    @property
    def active(self) -> bool:
        return self._enabled and self._store is not None

    async def check_only(
        self,
        visitor_id: str,
        limit_key: str,
        max_requests: int,
        window_ms: int,
    ) -> RateLimitDecision:
        """Report the visitor's quota status without consuming any of it.

        The stored record is never written, even when its window has expired.
        """
        self._validate(visitor_id, limit_key, max_requests, window_ms)
        now = self._clock()

        store = self._store
        if not self._enabled or store is None:
            return self._fail_open(now, max_requests, window_ms, reason="disabled")

        try:
            record = await self._load(store, visitor_id, limit_key, now, window_ms)
        except _STORE_ERRORS as exc:
            return self._store_unavailable(exc, visitor_id, now, max_requests, window_ms)

        return RateLimitDecision(
            allowed=record.count < max_requests,
            resets_at=record.resets_at(window_ms),
            limit=max_requests,
            remaining=max(0, max_requests - record.count),
        )

    async def check_and_increment(
        self,
        visitor_id: str,
        limit_key: str,
        max_requests: int,
        window_ms: int,
    ) -> RateLimitDecision:
        """Consume one unit of the visitor's quota if any is left.

        Blocked calls do not write. Allowed calls persist the incremented
        record with a store expiry of ``ceil(window_ms / 1000)`` seconds.
        """
        self._validate(visitor_id, limit_key, max_requests, window_ms)
        now = self._clock()

        store = self._store
        if not self._enabled or store is None:
            return self._fail_open(now, max_requests, window_ms, reason="disabled")

        visitor_hash = hash_identifier(visitor_id)
        try:
            record = await self._load(store, visitor_id, limit_key, now, window_ms)
            resets_at = record.resets_at(window_ms)

            if record.count >= max_requests:
                logger.warning(
                    "rate_limit.exceeded",
                    extra={
                        "visitor_hash": visitor_hash,
                        "limit_key": limit_key,
                        "limit": max_requests,
                        "count": record.count,
                        "resets_at": resets_at,
                    },
                )
                return RateLimitDecision(
                    allowed=False,
                    resets_at=resets_at,
                    limit=max_requests,
                    remaining=0,
                )

            updated = record.incremented()
            await store.set(
                record_key(limit_key, visitor_id),
                encode_record(updated),
                ttl_seconds=ttl_seconds(window_ms),
            )
        except _STORE_ERRORS as exc:
            return self._store_unavailable(exc, visitor_id, now, max_requests, window_ms)

        remaining = max(0, max_requests - updated.count)
        logger.info(
            "rate_limit.allowed",
            extra={
                "visitor_hash": visitor_hash,
                "limit_key": limit_key,
                "limit": max_requests,
                "remaining": remaining,
                "window_ms": window_ms,
            },
        )
        return RateLimitDecision(
            allowed=True,
            resets_at=resets_at,
            limit=max_requests,
            remaining=remaining,
        )

    async def peek_record(self, visitor_id: str, limit_key: str) -> RateLimitRecord | None:
        """Return the raw stored record for inspection.

        Raises:
            StoreUnavailableError: If the store is unreachable or not configured.
        """
        if self._store is None:
            raise StoreUnavailableError(
                code="store_not_configured",
                message="No key-value store is configured",
            )
        raw = await self._store.get(record_key(limit_key, visitor_id))
        return decode_record(raw)

    async def _load(
        self,
        store: AbstractKeyValueStore,
        visitor_id: str,
        limit_key: str,
        now: int,
        window_ms: int,
    ) -> RateLimitRecord:
        """Read the record and normalise it to the effective current window."""
        raw = await store.get(record_key(limit_key, visitor_id))
        record = decode_record(raw)
        if record is None:
            if raw is not None:
                logger.warning(
                    "rate_limit.malformed_record",
                    extra={
                        "visitor_hash": hash_identifier(visitor_id),
                        "limit_key": limit_key,
                    },
                )
            return RateLimitRecord.fresh(now)
        return record.effective(now, window_ms)

    @staticmethod
    def _validate(visitor_id: str, limit_key: str, max_requests: int, window_ms: int) -> None:
        if not visitor_id:
            raise ValidationAppError(
                code="visitor_id_required",
                message="Visitor ID is required",
                details={"field": "visitorId"},
            )
        if not limit_key or max_requests < 1 or window_ms < 1:
            raise ValidationAppError(
                code="invalid_rate_limit_policy",
                message="limit_key must be set and max_requests/window_ms must be >= 1",
            )

    @staticmethod
    def _fail_open(now: int, max_requests: int, window_ms: int, *, reason: str) -> RateLimitDecision:
        logger.debug("rate_limit.fail_open", extra={"reason": reason})
        return RateLimitDecision(
            allowed=True,
            resets_at=now + window_ms,
            limit=max_requests,
            remaining=max_requests,
        )

    def _store_unavailable(
        self,
        exc: Exception,
        visitor_id: str,
        now: int,
        max_requests: int,
        window_ms: int,
    ) -> RateLimitDecision:
        logger.warning(
            "rate_limit.store_unavailable",
            extra={
                "visitor_hash": hash_identifier(visitor_id),
                "error_code": getattr(exc, "code", type(exc).__name__),
                "error_message": str(exc),
            },
        )
        return self._fail_open(now, max_requests, window_ms, reason="store_unavailable")
