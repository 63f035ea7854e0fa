"""Quota counter record stored per (limit key, visitor id).

Stored layout:
    key:   ratelimit:<limitKey>:<visitorId>
    value: {"count": <int>, "timestamp": <epoch-ms>}

``timestamp`` is the start of the current window. Values that do not match
this shape decode to None, which callers treat exactly like a missing key.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, replace
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, StrictInt, ValidationError

KEY_PREFIX = "ratelimit"


class _StoredRecord(BaseModel):
    """Validation model for the JSON value held in the store."""

    count: StrictInt = Field(..., ge=0)
    timestamp: StrictInt = Field(..., ge=0)

    model_config = ConfigDict(extra="ignore")


@dataclass(frozen=True)
class RateLimitRecord:
    """Requests consumed in the window that began at ``window_start`` (ms)."""

    count: int
    window_start: int

    @classmethod
    def fresh(cls, now_ms: int) -> "RateLimitRecord":
        return cls(count=0, window_start=now_ms)

    def is_expired(self, now_ms: int, window_ms: int) -> bool:
        return now_ms - self.window_start > window_ms

    def resets_at(self, window_ms: int) -> int:
        return self.window_start + window_ms

    def effective(self, now_ms: int, window_ms: int) -> "RateLimitRecord":
        """Return this record, or a fresh window if this one has expired."""
        if self.is_expired(now_ms, window_ms):
            return RateLimitRecord.fresh(now_ms)
        return self

    def incremented(self) -> "RateLimitRecord":
        return replace(self, count=self.count + 1)


def record_key(limit_key: str, visitor_id: str) -> str:
    return f"{KEY_PREFIX}:{limit_key}:{visitor_id}"


def ttl_seconds(window_ms: int) -> int:
    """Store expiry for a window, rounded up to whole seconds (minimum 1)."""
    return max(1, math.ceil(window_ms / 1000))


def decode_record(raw: str | bytes | Mapping[str, Any] | None) -> RateLimitRecord | None:
    """Parse a stored value into a record.

    Accepts the JSON string written by ``encode_record``, raw bytes, or a
    mapping already decoded by the store client.

    Args:
        raw: Value returned by the store.

    Returns:
        The decoded record, or None if the value is absent or malformed.
    """
    if raw is None:
        return None

    try:
        if isinstance(raw, Mapping):
            stored = _StoredRecord.model_validate(dict(raw))
        else:
            stored = _StoredRecord.model_validate_json(raw)
    except (ValidationError, ValueError, TypeError):
        return None

    return RateLimitRecord(count=stored.count, window_start=stored.timestamp)


def encode_record(record: RateLimitRecord) -> str:
    return json.dumps(
        {"count": record.count, "timestamp": record.window_start},
        separators=(",", ":"),
    )
