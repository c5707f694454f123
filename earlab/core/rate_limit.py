"""Rate limiting for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer:
- named presets for the kinds of endpoints the site exposes
- client identifier derivation from proxy headers and user agent
- a dependency factory raising HTTP 429 when a client exceeds its budget

The identifier is a heuristic (IP + user agent). It can be defeated by IP
rotation or spoofed forwarding headers behind an untrusted proxy, which is
acceptable for abuse mitigation on public forms.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Annotated, Awaitable, Callable

from fastapi import Depends, HTTPException, Request, status

from earlab.adapters.rate_limit.base import AbstractRateLimiter, RateLimitConfig
from earlab.adapters.rate_limit.in_memory import InMemoryRateLimiter
from earlab.core.config import settings
from earlab.core.logging import fingerprint

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE = "Too many requests. Please try again later."

_MINUTE_MS = 60 * 1000


class RateLimitPresets:
    """Fixed parameter sets consumed by routes."""

    # Login-type endpoints
    AUTH = RateLimitConfig(
        window_ms=15 * _MINUTE_MS,
        max=5,
        message="Too many authentication attempts. Please try again later.",
    )
    # General API endpoints
    API = RateLimitConfig(
        window_ms=_MINUTE_MS,
        max=60,
        message="API rate limit exceeded. Please try again later.",
    )
    # Contact and other form submissions
    FORM = RateLimitConfig(
        window_ms=_MINUTE_MS,
        max=5,
        message="Too many form submissions. Please try again later.",
    )
    # Public reads
    PUBLIC = RateLimitConfig(window_ms=_MINUTE_MS, max=120)
    # Newsletter subscribe endpoint
    NEWSLETTER = RateLimitConfig(
        window_ms=60 * _MINUTE_MS,
        max=3,
        message="Too many subscription attempts. Please try again later.",
    )


_limiter: AbstractRateLimiter | None = None


def get_rate_limiter() -> AbstractRateLimiter:
    """Return the process-wide rate limiter instance.

    The instance is cached in-module to preserve counters across requests.
    Routes resolve it through ``Depends`` so tests can substitute their own
    instance via ``app.dependency_overrides``.
    """

    global _limiter

    if _limiter is None:
        _limiter = InMemoryRateLimiter(
            sweep_interval_seconds=settings.app.rate_limit_sweep_interval_seconds,
        )
    return _limiter


def reset_rate_limiter() -> None:
    """Destroy the cached limiter (stop its sweeper, drop counters)."""

    global _limiter

    if _limiter is not None:
        _limiter.destroy()
        _limiter = None


def get_client_identifier(request: Request) -> str:
    """Build the limiter key for the current request.

    Uses the first address of ``X-Forwarded-For``, then ``X-Real-IP``, then
    the literal ``unknown``, joined with ``:`` to the raw user agent.
    """

    forwarded = request.headers.get("x-forwarded-for")
    real_ip = request.headers.get("x-real-ip")

    ip = (forwarded.split(",")[0].strip() if forwarded else "") or real_ip or "unknown"
    user_agent = request.headers.get("user-agent") or "unknown"

    return f"{ip}:{user_agent}"


def _format_reset(reset_time_ms: int) -> str:
    return (
        datetime.fromtimestamp(reset_time_ms / 1000, tz=timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def limit_requests(config: RateLimitConfig) -> Callable[..., Awaitable[None]]:
    """Create a FastAPI dependency enforcing ``config`` per client.

    Counters are keyed by route path and client identifier, so presets on
    different routes never share a window.

    Usage:
        @router.post("/contact", dependencies=[Depends(limit_requests(RateLimitPresets.FORM))])

    Args:
        config: Window, limit and rejection message.

    Returns:
        Async dependency raising HTTP 429 once the client is over budget.
    """

    async def enforce_rate_limit(
        request: Request,
        limiter: Annotated[AbstractRateLimiter, Depends(get_rate_limiter)],
    ) -> None:
        if not settings.app.rate_limit_enabled:
            return

        identifier = get_client_identifier(request)
        # Each route keeps its own window per client
        result = limiter.check(f"{request.url.path}:{identifier}", config)
        client_hash = fingerprint(identifier)

        if result.allowed:
            logger.debug(
                "rate_limit.allowed",
                extra={
                    "client_hash": client_hash,
                    "path": request.url.path,
                    "limit": result.limit,
                    "remaining": result.remaining,
                },
            )
            return

        retry_after = result.retry_after_seconds or 0
        logger.warning(
            "rate_limit.exceeded",
            extra={
                "client_hash": client_hash,
                "path": request.url.path,
                "limit": result.limit,
                "window_ms": config.window_ms,
                "retry_after_s": retry_after,
            },
        )

        headers: dict[str, str] = {}
        if settings.app.rate_limit_include_headers:
            headers["Retry-After"] = str(retry_after)
            headers["X-RateLimit-Limit"] = str(result.limit)
            headers["X-RateLimit-Remaining"] = str(result.remaining)
            headers["X-RateLimit-Reset"] = _format_reset(result.reset_time)

        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=config.message or DEFAULT_MESSAGE,
            headers=headers or None,
        )

    return enforce_rate_limit
