"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: one lock guards the entry map, shared by request handlers and
  the sweeper thread.
- Windows start at each client's first request (not aligned to the clock) and
  are replaced wholesale once expired.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from earlab.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitConfig,
    RateLimitResult,
)

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL_SECONDS = 5 * 60


@dataclass
class _Entry:
    count: int
    reset_time: int


class InMemoryRateLimiter(AbstractRateLimiter):
    """Per-identifier request counter with expiring windows.

    The first request from an identifier opens a window of ``config.window_ms``;
    requests inside it are counted until ``config.max`` is reached, after which
    they are rejected without touching the entry. The first request after the
    window has passed opens a fresh one.

    Expired entries are removed by ``sweep``, which ``start`` runs periodically
    on a daemon thread. Nothing runs until ``start`` is called.

    Important:
        If the API runs with multiple workers (e.g., several Uvicorn/Gunicorn
        processes), each worker enforces its own independent limits.
    """

    def __init__(
        self,
        *,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            sweep_interval_seconds: Delay between background sweeps.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If sweep_interval_seconds is not positive.
        """
        if sweep_interval_seconds <= 0:
            raise ValueError("sweep_interval_seconds must be > 0")

        self._sweep_interval = sweep_interval_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, _Entry] = {}
        self._stop_event = threading.Event()
        self._sweeper: threading.Thread | None = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, identifier: object) -> bool:
        with self._lock:
            return identifier in self._entries

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def check(self, identifier: str, config: RateLimitConfig) -> RateLimitResult:
        """Count one request for ``identifier`` under ``config``.

        Args:
            identifier: Client key.
            config: Window and limit to apply.

        Returns:
            RateLimitResult; ``remaining`` is ``max - count`` after this request,
            or 0 when rejected.
        """
        now = self._now_ms()

        with self._lock:
            entry = self._entries.get(identifier)

            if entry is None or now > entry.reset_time:
                entry = _Entry(count=1, reset_time=now + config.window_ms)
                self._entries[identifier] = entry
                return RateLimitResult(
                    allowed=True,
                    limit=config.max,
                    remaining=config.max - 1,
                    reset_time=entry.reset_time,
                    retry_after_seconds=None,
                )

            if entry.count >= config.max:
                retry_after = max(0, math.ceil((entry.reset_time - now) / 1000))
                return RateLimitResult(
                    allowed=False,
                    limit=config.max,
                    remaining=0,
                    reset_time=entry.reset_time,
                    retry_after_seconds=retry_after,
                )

            entry.count += 1
            return RateLimitResult(
                allowed=True,
                limit=config.max,
                remaining=config.max - entry.count,
                reset_time=entry.reset_time,
                retry_after_seconds=None,
            )

    def sweep(self) -> int:
        """Delete entries whose window has already expired.

        Returns:
            Number of entries removed.
        """
        now = self._now_ms()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if now > entry.reset_time]
            for key in expired:
                del self._entries[key]
            remaining = len(self._entries)

        if expired:
            logger.debug(
                "rate_limit.sweep",
                extra={"removed": len(expired), "entries": remaining},
            )
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    @property
    def running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()

    def start(self) -> None:
        """Start the periodic sweep thread. Calling it twice is a no-op."""
        if self.running:
            return

        self._stop_event.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop,
            name="rate-limit-sweeper",
            daemon=True,
        )
        self._sweeper.start()
        logger.info(
            "rate_limit.sweeper_started",
            extra={"interval_s": self._sweep_interval},
        )

    def stop(self) -> None:
        """Stop the sweep thread and wait for it to exit."""
        sweeper = self._sweeper
        if sweeper is None:
            return

        self._stop_event.set()
        if sweeper is not threading.current_thread():
            sweeper.join(timeout=self._sweep_interval + 1)
        self._sweeper = None
        logger.info("rate_limit.sweeper_stopped")

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self._sweep_interval):
            try:
                self.sweep()
            except Exception:
                logger.exception("rate_limit.sweep_failed")
