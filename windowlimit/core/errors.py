"""Library exception types.

Every limiter failure is synchronous and local. These errors signal
programming mistakes (a bad name, a stale reference) rather than transient
conditions, so nothing in the library retries them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    name: str
    field: str
    value: Any
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for library failures.

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


class RateLimitAppError(AppError):
    """Base for errors raised by limiter and registry operations."""


class DuplicateNameError(RateLimitAppError):
    """Raised when a limiter is constructed with a name already registered."""

    def __init__(self, name: str) -> None:
        super().__init__(
            code="duplicate_name",
            message=f'Rate limit with name "{name}" already exists',
            details={"name": name},
        )


class UnknownNameError(RateLimitAppError):
    """Raised when a name-qualified operation references no limiter."""

    def __init__(self, name: str) -> None:
        super().__init__(
            code="unknown_name",
            message=f'Rate limit with name "{name}" does not exist',
            details={"name": name},
        )


class DeletedInstanceError(RateLimitAppError):
    """Raised on any operation against a deleted limiter."""

    def __init__(self, name: str) -> None:
        super().__init__(
            code="deleted_instance",
            message=f'Rate limit "{name}" has been deleted. Construct a new instance',
            details={"name": name},
        )
