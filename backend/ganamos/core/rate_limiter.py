"""Fixed-Window Rate Limiter — in-memory request counting keyed by identifier.

Invariants:
    - First request of a window (or after expiry) starts a new window with count 1
    - allowed == (count <= max_requests); refused requests still count
    - remaining never negative
    - State is per-process and lost on restart

Design Decisions:
    - Fixed window over token bucket: devices poll on fixed intervals, so bursts
      at window edges are harmless
    - `now` injectable (seconds, monotonic-free epoch) so tests never sleep
    - Expired entries purged every CLEANUP_EVERY checks instead of on a timer
"""

import math
import time
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitConfig:
    max_requests: int
    window_seconds: int


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_time: float
    total_requests: int

    def retry_after(self, now: float | None = None) -> int:
        """Whole seconds until the window resets (never below 1 when refused)."""
        now = time.time() if now is None else now
        return max(1, math.ceil(self.reset_time - now))


@dataclass
class _Window:
    count: int
    reset_time: float


RATE_LIMITS: dict[str, RateLimitConfig] = {
    "DEVICE_CONFIG": RateLimitConfig(10, 60),
    "DEVICE_SPEND": RateLimitConfig(20, 60),
    "DEVICE_SYNC": RateLimitConfig(30, 60),
    "GAME_SCORE": RateLimitConfig(10, 60),
    "WALLET_TRANSFER": RateLimitConfig(10, 60),
    "WALLET_TRANSFER_HOURLY": RateLimitConfig(30, 3600),
    "PICKLEBALL_CREATE": RateLimitConfig(5, 60),
    "PICKLEBALL_JOIN": RateLimitConfig(10, 60),
    "PICKLEBALL_STATE": RateLimitConfig(120, 60),
    "PICKLEBALL_COMPLETE": RateLimitConfig(5, 60),
}


class FixedWindowRateLimiter:
    """Counts requests per identifier inside fixed time windows."""

    CLEANUP_EVERY = 100

    def __init__(self):
        self._windows: dict[str, _Window] = {}
        self._checks = 0

    def check(
        self,
        identifier: str,
        config: RateLimitConfig,
        now: float | None = None,
    ) -> RateLimitResult:
        now = time.time() if now is None else now
        self._checks += 1
        if self._checks % self.CLEANUP_EVERY == 0:
            self.cleanup(now)

        window = self._windows.get(identifier)
        if window is None or now >= window.reset_time:
            window = _Window(count=1, reset_time=now + config.window_seconds)
            self._windows[identifier] = window
            return RateLimitResult(
                allowed=True,
                remaining=config.max_requests - 1,
                reset_time=window.reset_time,
                total_requests=1,
            )

        window.count += 1
        return RateLimitResult(
            allowed=window.count <= config.max_requests,
            remaining=max(0, config.max_requests - window.count),
            reset_time=window.reset_time,
            total_requests=window.count,
        )

    def cleanup(self, now: float | None = None) -> int:
        """Drop expired windows. Returns how many were removed."""
        now = time.time() if now is None else now
        expired = [k for k, w in self._windows.items() if now >= w.reset_time]
        for key in expired:
            del self._windows[key]
        return len(expired)

    def reset(self) -> None:
        self._windows.clear()
        self._checks = 0

    def __len__(self) -> int:
        return len(self._windows)


# Process-wide limiter shared by all routes
rate_limiter = FixedWindowRateLimiter()
