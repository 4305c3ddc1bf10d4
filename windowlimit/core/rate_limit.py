"""Rate limiting dependency for FastAPI routes.

This module wires named limiters into the HTTP layer. The limiter decides;
this layer only picks the source and exposes the result as headers. A refusal
becomes ``429 Too Many Requests`` unless the route supplies ``on_limited``.

Usage::

    login_limit = RateLimit("login", 5, 60)

    @app.post("/login")
    async def login(
        request: Request,
        result: AttemptResult = Depends(rate_limit_dependency(login_limit)),
    ):
        ...
        # successful login: forget earlier failures
        result.rate_limit.reset(client_source(request))
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from fastapi import HTTPException, Request, Response, status

from windowlimit.core.config import RateLimitSettings, settings
from windowlimit.core.logging import hash_source
from windowlimit.services.rate_limit import (
    AttemptResult,
    RateLimit,
    RateLimitRegistry,
    default_registry,
)

logger = logging.getLogger(__name__)

SourceExtractor = Callable[[Request], str]
LimitedExceptionFactory = Callable[[AttemptResult, Request, dict[str, str]], Exception]


def client_source(request: Request) -> str:
    """Default source extractor: the client host, or "unknown"."""
    return request.client.host if request.client else "unknown"


def build_rate_limit_headers(
    result: AttemptResult,
    rate_limit_settings: RateLimitSettings | None = None,
    *,
    reset_header_value: Callable[[int], str] = str,
) -> dict[str, str]:
    """Render an attempt result as RateLimit-* headers.

    Headers configured with an empty name are skipped. Remaining and reset are
    clamped at zero before formatting; ``reset_header_value`` renders the
    reset seconds (e.g. as an HTTP date).
    """

    cfg = rate_limit_settings or settings.rate_limit
    headers: dict[str, str] = {}
    if not cfg.send_headers:
        return headers

    if cfg.header_limit:
        headers[cfg.header_limit] = str(result.limit)
    if cfg.header_remaining:
        headers[cfg.header_remaining] = str(max(0, result.remaining))
    if cfg.header_reset:
        headers[cfg.header_reset] = reset_header_value(max(0, result.reset))
    return headers


def too_many_requests(
    result: AttemptResult, request: Request, headers: dict[str, str]
) -> HTTPException:
    """Default refusal: a 429 carrying the rate limit headers."""
    return HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Rate limit exceeded. Try again later.",
        headers=headers,
    )


def rate_limit_dependency(
    limiter: RateLimit | str,
    *,
    source: SourceExtractor = client_source,
    weight: int = 1,
    registry: RateLimitRegistry | None = None,
    on_limited: LimitedExceptionFactory = too_many_requests,
    reset_header_value: Callable[[int], str] = str,
) -> Callable[[Request, Response], Awaitable[AttemptResult]]:
    """Build a FastAPI dependency charging one attempt per request.

    Args:
        limiter: Limiter instance, or the name of one in ``registry``. Names
            are resolved on every request, so a deleted-and-recreated limiter
            is picked up.
        source: Extracts the source identifier from the request.
        weight: Units charged per request.
        registry: Registry used to resolve names (default registry if omitted).
        on_limited: Builds the exception raised for refused requests from the
            result, the request and the headers (``Retry-After`` included).
            Return an ``HTTPException`` or an error with a registered handler.
        reset_header_value: Formats the reset seconds for the reset header.

    Returns:
        Async dependency returning the ``AttemptResult`` of allowed requests.

    Raises:
        UnknownNameError: At request time, if ``limiter`` names nothing.
    """

    reg = registry if registry is not None else default_registry

    async def enforce_rate_limit(request: Request, response: Response) -> AttemptResult:
        instance = limiter if isinstance(limiter, RateLimit) else reg.resolve(limiter)
        key = source(request)
        result = instance.attempt(key, weight)
        headers = build_rate_limit_headers(result, reset_header_value=reset_header_value)

        log_extra = {
            "rate_limit": instance.name,
            "source_hash": hash_source(key),
            "limit": result.limit,
            "remaining": result.remaining,
            "reset_s": result.reset,
        }

        if result.allow:
            logger.debug("rate_limit.allowed", extra=log_extra)
            response.headers.update(headers)
            return result

        logger.warning("rate_limit.exceeded", extra=log_extra)
        headers["Retry-After"] = str(max(0, result.reset))
        raise on_limited(result, request, headers)

    return enforce_rate_limit
