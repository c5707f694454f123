"""Rate limiter interfaces.

The API depends on this abstraction (not the concrete implementation) so the
in-memory store can later be swapped for a shared one (e.g., Redis with
atomic increment-and-expire) with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitConfig:
    """Fixed-window limit applied to one endpoint.

    Attributes:
        window_ms: Window length in milliseconds.
        max: Maximum accepted requests per window and client.
        message: User-facing text returned when the limit is hit.
    """

    window_ms: int
    max: int
    message: str | None = None

    def __post_init__(self) -> None:
        if self.window_ms < 1:
            raise ValueError("window_ms must be >= 1")
        if self.max < 1:
            raise ValueError("max must be >= 1")


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Requests left in the current window (0 when blocked).
        reset_time: Epoch milliseconds at which the current window expires.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_time: int
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def check(self, identifier: str, config: RateLimitConfig) -> RateLimitResult:
        """Count one request for ``identifier`` and decide whether to accept it.

        Args:
            identifier: Client key (see ``get_client_identifier``).
            config: Window and limit to apply.

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        """Forget every tracked client."""
        raise NotImplementedError

    def start(self) -> None:
        """Start background maintenance, if the backend needs any."""

    def stop(self) -> None:
        """Stop background maintenance started by ``start``."""

    def destroy(self) -> None:
        """Stop maintenance and drop all state."""
        self.stop()
        self.clear()
