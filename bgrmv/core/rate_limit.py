"""Per-IP sliding-window limiter for the proxy routes."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from functools import lru_cache
from threading import Lock
import time
from typing import Callable, Deque, Dict, Protocol

from bgrmv.core.config import get_settings


# Only upstream-backed routes spend provider quota; health and metrics routes stay unlimited.
LIMITED_PATH_PREFIXES = ("/api/",)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_seconds: int


class IPRateLimiter(Protocol):
    def check(self, *, ip: str) -> RateLimitDecision:
        ...


def is_rate_limited_path(path: str) -> bool:
    return path.startswith(LIMITED_PATH_PREFIXES)


class InMemoryIPRateLimiter:
    """Keeps the accepted request timestamps of each IP within the last window."""

    def __init__(
        self,
        *,
        requests_per_window: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if requests_per_window <= 0:
            raise ValueError("requests_per_window must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self._limit = requests_per_window
        self._window = window_seconds
        self._clock = clock
        self._lock = Lock()
        self._hits: Dict[str, Deque[float]] = {}

    def _evict(self, now: float) -> None:
        cutoff = now - self._window
        for ip in list(self._hits):
            hits = self._hits[ip]
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if not hits:
                del self._hits[ip]

    def check(self, *, ip: str) -> RateLimitDecision:
        now = self._clock()
        with self._lock:
            self._evict(now)
            hits = self._hits.setdefault(ip, deque())
            allowed = len(hits) < self._limit
            if allowed:
                hits.append(now)
            remaining = max(self._limit - len(hits), 0)
            oldest = hits[0]

        reset_seconds = max(int(round(oldest + self._window - now)), 0)
        return RateLimitDecision(
            allowed=allowed,
            limit=self._limit,
            remaining=remaining,
            reset_seconds=reset_seconds,
        )


@lru_cache(maxsize=1)
def get_ip_rate_limiter() -> IPRateLimiter:
    settings = get_settings()
    return InMemoryIPRateLimiter(
        requests_per_window=settings.ip_rate_limit_requests_per_window,
        window_seconds=settings.ip_rate_limit_window_seconds,
    )
