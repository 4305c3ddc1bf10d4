"""Named, in-process, fixed-window rate limiters."""

from windowlimit.core.errors import (
    AppError,
    DeletedInstanceError,
    DuplicateNameError,
    RateLimitAppError,
    UnknownNameError,
)
from windowlimit.services import lookups
from windowlimit.services.rate_limit import (
    AttemptResult,
    CreateResult,
    RateLimit,
    RateLimitRegistry,
    default_registry,
)

__all__ = [
    "AppError",
    "AttemptResult",
    "CreateResult",
    "DeletedInstanceError",
    "DuplicateNameError",
    "RateLimit",
    "RateLimitAppError",
    "RateLimitRegistry",
    "UnknownNameError",
    "default_registry",
    "lookups",
]
