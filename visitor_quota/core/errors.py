"""Domain error types.

Adapters translate backend-specific failures (redis, the fingerprint
provider) into these so services and the HTTP layer only deal with one
hierarchy. The exception handlers map each subclass to a status code.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Optional structured context attached to an error response."""

    code: str
    message: str
    hint: str
    field: str
    backend: str
    operation: str
    provider: str
    http_status: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when request input or configuration validation fails."""


class AuthenticationAppError(AppError):
    """Raised when the admin key is missing or invalid."""


class StoreUnavailableError(AppError):
    """Raised by store adapters on network failures, timeouts or missing config."""


class ProviderUnavailableError(AppError):
    """Raised when the fingerprinting provider cannot produce an identifier."""
