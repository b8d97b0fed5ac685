"""
Rate limiting for login and registration.

Counters live behind a small backend interface so the single-process map can
be swapped for Redis without touching call sites.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

from community_connect.core.config import Settings
from community_connect.core.redis import get_redis

logger = logging.getLogger(__name__)

# Redis key prefix
KEY_PREFIX = "ratelimit:"


@dataclass(frozen=True)
class RateLimitPolicy:
    action: str
    max_requests: int
    window_seconds: int

    def identifier(self, client_ip: str) -> str:
        return f"{self.action}-{client_ip}"


def login_policy(settings: Settings) -> RateLimitPolicy:
    return RateLimitPolicy("login", settings.LOGIN_RATE_LIMIT, settings.LOGIN_RATE_WINDOW_SECONDS)


def register_policy(settings: Settings) -> RateLimitPolicy:
    return RateLimitPolicy("register", settings.REGISTER_RATE_LIMIT, settings.REGISTER_RATE_WINDOW_SECONDS)


class RateLimitBackend(ABC):
    """Fixed-window counter keyed by identifier."""

    @abstractmethod
    async def allow(self, identifier: str, max_requests: int, window_seconds: int) -> bool:
        """
        Count one request and report whether it is within the limit.

        Args:
            identifier: Counter key, e.g. "login-203.0.113.7"
            max_requests: Requests allowed per window
            window_seconds: Window length

        Returns:
            True if the request is allowed
        """

    async def check(self, policy: RateLimitPolicy, client_ip: str) -> bool:
        return await self.allow(policy.identifier(client_ip), policy.max_requests, policy.window_seconds)


@dataclass
class _Counter:
    count: int
    reset_at: float


class InMemoryRateLimitBackend(RateLimitBackend):
    """
    Process-local counters.

    Only correct for a single server instance. Stale keys are not evicted.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._counters: dict[str, _Counter] = {}
        self._lock = threading.Lock()
        self._clock = clock

    async def allow(self, identifier: str, max_requests: int, window_seconds: int) -> bool:
        now = self._clock()
        with self._lock:
            counter = self._counters.get(identifier)
            if counter is None or now > counter.reset_at:
                self._counters[identifier] = _Counter(count=1, reset_at=now + window_seconds)
                return True
            counter.count += 1
            return counter.count <= max_requests

    def clear(self) -> None:
        with self._lock:
            self._counters.clear()


class RedisRateLimitBackend(RateLimitBackend):
    """Counters shared by every instance through Redis."""

    def __init__(self, redis_url: str) -> None:
        self.redis_url = redis_url

    async def allow(self, identifier: str, max_requests: int, window_seconds: int) -> bool:
        key = f"{KEY_PREFIX}{identifier}"
        try:
            redis = await get_redis(self.redis_url)
            # Pipeline so window creation and increment are applied together
            pipe = redis.pipeline()
            pipe.set(key, 0, px=window_seconds * 1000, nx=True)
            pipe.incr(key)
            results = await pipe.execute()
            count = int(results[1])
        except Exception as e:
            # Fail open if Redis is unavailable
            logger.warning(f"Rate limit check failed, allowing request: {e}")
            return True

        if count > max_requests:
            logger.warning(f"Rate limit exceeded for {identifier}: {count}/{max_requests}")
            return False
        return True


def create_rate_limiter(settings: Settings) -> RateLimitBackend:
    if settings.RATE_LIMIT_BACKEND == "redis":
        return RedisRateLimitBackend(settings.REDIS_URL)
    return InMemoryRateLimitBackend()
