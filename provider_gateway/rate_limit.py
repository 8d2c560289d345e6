"""Per-provider fixed-window rate limiter."""
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional, Tuple

from provider_gateway.errors import ConfigurationError

LOGGER = logging.getLogger(__name__)

# Counters whose window ended longer ago than this are garbage collected.
STALE_COUNTER_SECONDS = 5 * 60


@dataclass
class RateLimitConfig:
    requests: int
    window_seconds: int


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_time: int
    limit: int


@dataclass
class _WindowCounter:
    count: int
    reset_at: float


DEFAULT_RATE_LIMITS: Dict[str, Tuple[int, int]] = {
    "tmdb": (40, 10),
    "google_places": (100, 60),
}


class RateLimiter:
    """Counts admitted requests per provider within time-aligned windows.

    Windows are fixed rather than sliding, so a provider may see up to twice
    its limit across a window boundary.
    """

    def __init__(
        self,
        limits: Optional[Mapping[str, Tuple[int, int]]] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._limits: Dict[str, RateLimitConfig] = {}
        self._counters: Dict[str, _WindowCounter] = {}
        self._clock = clock
        if limits is None:
            limits = DEFAULT_RATE_LIMITS
        for name, (requests, window) in limits.items():
            self.set_rate_limit(name, requests, window)

    def set_rate_limit(self, name: str, requests: int, window_seconds: int) -> None:
        if requests < 1 or window_seconds < 1:
            raise ConfigurationError(
                f"Invalid rate limit for {name}: {requests} requests / {window_seconds}s"
            )
        self._limits[name] = RateLimitConfig(requests=requests, window_seconds=window_seconds)

    def get_rate_limit_config(self, name: str) -> Optional[RateLimitConfig]:
        return self._limits.get(name)

    def _window(self, name: str, config: RateLimitConfig, now: float) -> Tuple[str, float]:
        window_start = math.floor(now / config.window_seconds) * config.window_seconds
        return f"{name}:{window_start}", window_start + config.window_seconds

    def check_limit(self, name: str) -> RateLimitResult:
        """Admit one request for ``name`` if its current window has room."""

        config = self._limits.get(name)
        if config is None:
            raise ConfigurationError(f"Unknown API: {name}")

        now = self._clock()
        key, reset_at = self._window(name, config, now)
        self._drop_stale_counters(now)

        reset_in = math.ceil(reset_at - now)
        counter = self._counters.get(key)
        if counter is None:
            counter = _WindowCounter(count=0, reset_at=reset_at)
        if counter.count >= config.requests:
            LOGGER.debug("rate limit denied", extra={"provider": name, "reset_in": reset_in})
            return RateLimitResult(
                allowed=False, remaining=0, reset_time=reset_in, limit=config.requests
            )

        counter.count += 1
        self._counters[key] = counter
        return RateLimitResult(
            allowed=True,
            remaining=config.requests - counter.count,
            reset_time=reset_in,
            limit=config.requests,
        )

    def get_remaining_requests(self, name: str) -> int:
        config = self._limits.get(name)
        if config is None:
            return 0
        key, _ = self._window(name, config, self._clock())
        counter = self._counters.get(key)
        if counter is None:
            return config.requests
        return max(0, config.requests - counter.count)

    def get_reset_time(self, name: str) -> int:
        config = self._limits.get(name)
        if config is None:
            return 0
        now = self._clock()
        _, reset_at = self._window(name, config, now)
        return math.ceil(reset_at - now)

    def reset_rate_limit(self, name: str) -> None:
        """Forget the current window's count for ``name``."""

        config = self._limits.get(name)
        if config is None:
            return
        key, _ = self._window(name, config, self._clock())
        self._counters.pop(key, None)

    def get_stats(self) -> Dict[str, Dict[str, int]]:
        now = self._clock()
        stats: Dict[str, Dict[str, int]] = {}
        for name, config in self._limits.items():
            key, reset_at = self._window(name, config, now)
            counter = self._counters.get(key)
            stats[name] = {
                "current": counter.count if counter else 0,
                "limit": config.requests,
                "resetTime": math.ceil(reset_at - now),
            }
        return stats

    def _drop_stale_counters(self, now: float) -> None:
        cutoff = now - STALE_COUNTER_SECONDS
        stale = [key for key, counter in self._counters.items() if counter.reset_at < cutoff]
        for key in stale:
            del self._counters[key]
