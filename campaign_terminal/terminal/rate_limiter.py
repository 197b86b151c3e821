"""
Rate Limiter - sliding window over upstream fetches.

Protects the outreach platform's API quota. Every admitted request records its
timestamp; timestamps older than the window are purged on each check, so the
window never holds more than max_requests entries.

Two implementations share one async interface:
- SlidingWindowRateLimiter: in-process deque, for the single-process memory setup
- RedisRateLimiter: Redis sorted set updated by an atomic Lua script, so every
  API worker and the cache-warm job draw on one quota

Usage:
    limiter = build_rate_limiter(redis_client)

    allowed, info = await limiter.check_limit()
    if not allowed:
        raise RateLimitedError(info["wait_time_minutes"], info["retry_after"])
"""

import math
import threading
import time
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Callable

from campaign_terminal.config import settings
from campaign_terminal.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

REDIS_LIMIT_KEY = "ratelimit:instantly"


class RateLimiter(ABC):
    """Shared window bookkeeping and the info dict both limiters return."""

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
    ):
        if max_requests < 1 or window_seconds <= 0:
            raise ValueError("max_requests and window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock

    @abstractmethod
    async def check_limit(self, now: float | None = None) -> tuple[bool, dict]:
        """
        Admit or refuse one request.

        Returns:
            Tuple of (allowed, info). On refusal info carries retry_after
            (seconds until the oldest admission expires) and
            wait_time_minutes (rounded up, at least 1).
        """

    @abstractmethod
    async def remaining(self, now: float | None = None) -> int: ...

    @abstractmethod
    async def reset(self) -> None: ...

    def _retry_after(self, oldest: float, now: float) -> int:
        return max(1, math.ceil(oldest + self.window_seconds - now))

    def _log_refusal(self, retry_after: int) -> None:
        logger.warning(
            "Rate limit reached",
            limit=self.max_requests,
            window_seconds=self.window_seconds,
            retry_after=retry_after,
        )

    def _create_info_dict(
        self,
        allowed: bool,
        remaining: int,
        retry_after: int | None = None,
        error: str | None = None,
    ) -> dict:
        """Standardized limiter info dict, also surfaced by /health."""
        info = {
            "allowed": allowed,
            "limit": self.max_requests,
            "remaining": remaining,
            "window_seconds": self.window_seconds,
        }
        if retry_after is not None:
            info["retry_after"] = retry_after
            info["wait_time_minutes"] = max(1, math.ceil(retry_after / 60))
        if error:
            info["error"] = error
        return info


class SlidingWindowRateLimiter(RateLimiter):
    """
    In-process sliding window.

    Example:
        With 100 req/hour and 100 requests made at 10:00:00, the next request
        is admitted at 11:00:00, when the oldest timestamp falls out.

    Thread Safety:
        check_limit() purges, counts and records under one lock.
    """

    name = "memory"

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(max_requests, window_seconds, clock)
        self._timestamps: deque[float] = deque()
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls) -> "SlidingWindowRateLimiter":
        config = settings.get_rate_limit_config()
        return cls(max_requests=config["max_requests"], window_seconds=config["window_seconds"])

    def _purge(self, now: float) -> None:
        cutoff = now - self.window_seconds
        while self._timestamps and self._timestamps[0] <= cutoff:
            self._timestamps.popleft()

    async def check_limit(self, now: float | None = None) -> tuple[bool, dict]:
        now = self._clock() if now is None else now

        with self._lock:
            self._purge(now)

            if len(self._timestamps) >= self.max_requests:
                retry_after = self._retry_after(self._timestamps[0], now)
                self._log_refusal(retry_after)
                return False, self._create_info_dict(
                    allowed=False, remaining=0, retry_after=retry_after
                )

            self._timestamps.append(now)
            remaining = self.max_requests - len(self._timestamps)

        return True, self._create_info_dict(allowed=True, remaining=remaining)

    async def remaining(self, now: float | None = None) -> int:
        now = self._clock() if now is None else now
        with self._lock:
            self._purge(now)
            return self.max_requests - len(self._timestamps)

    async def reset(self) -> None:
        with self._lock:
            self._timestamps.clear()


class RedisRateLimiter(RateLimiter):
    """
    Process-wide sliding window in a Redis sorted set (score = admission time).

    Fails open: if Redis errors, the request is admitted and the error is
    reported in the info dict, so a Redis outage never blocks the terminal.
    """

    name = "redis"

    # Returns: {allowed (0 or 1), count after this call, oldest score or 0}
    CHECK_LUA_SCRIPT = """
    local key = KEYS[1]
    local limit = tonumber(ARGV[1])
    local window_seconds = tonumber(ARGV[2])
    local now = tonumber(ARGV[3])
    local member = ARGV[4]

    redis.call('ZREMRANGEBYSCORE', key, '-inf', now - window_seconds)
    local count = redis.call('ZCARD', key)

    if count >= limit then
        local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
        local oldest_score = 0
        if #oldest > 0 then
            oldest_score = oldest[2]
        end
        return {0, count, oldest_score}
    end

    redis.call('ZADD', key, now, member)
    redis.call('EXPIRE', key, math.ceil(window_seconds * 2))
    return {1, count + 1, 0}
    """

    COUNT_LUA_SCRIPT = """
    redis.call('ZREMRANGEBYSCORE', KEYS[1], '-inf', tonumber(ARGV[1]) - tonumber(ARGV[2]))
    return redis.call('ZCARD', KEYS[1])
    """

    def __init__(
        self,
        redis_client,
        max_requests: int = 100,
        window_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
        key: str = REDIS_LIMIT_KEY,
        fail_open: bool = True,
    ):
        super().__init__(max_requests, window_seconds, clock)
        self.redis = redis_client
        self.key = key
        self.fail_open = fail_open

    @classmethod
    def from_settings(cls, redis_client) -> "RedisRateLimiter":
        config = settings.get_rate_limit_config()
        return cls(
            redis_client,
            max_requests=config["max_requests"],
            window_seconds=config["window_seconds"],
        )

    async def check_limit(self, now: float | None = None) -> tuple[bool, dict]:
        now = self._clock() if now is None else now
        member = f"{now}:{time.time_ns()}"

        try:
            result = await self.redis.eval(
                self.CHECK_LUA_SCRIPT, 1, self.key, self.max_requests, self.window_seconds, now, member
            )
        except Exception as e:
            logger.error("Rate limit check failed", error=str(e), fail_open=self.fail_open)
            if self.fail_open:
                return True, self._create_info_dict(
                    allowed=True, remaining=self.max_requests, error="redis_unavailable"
                )
            return False, self._create_info_dict(
                allowed=False, remaining=0, retry_after=self.window_seconds, error="redis_unavailable"
            )

        allowed, count, oldest = bool(int(result[0])), int(result[1]), float(result[2] or 0)
        if not allowed:
            retry_after = self._retry_after(oldest, now) if oldest > 0 else self.window_seconds
            self._log_refusal(retry_after)
            return False, self._create_info_dict(allowed=False, remaining=0, retry_after=retry_after)

        return True, self._create_info_dict(allowed=True, remaining=max(0, self.max_requests - count))

    async def remaining(self, now: float | None = None) -> int:
        now = self._clock() if now is None else now
        try:
            count = await self.redis.eval(self.COUNT_LUA_SCRIPT, 1, self.key, now, self.window_seconds)
        except Exception as e:
            logger.error("Rate limit count failed", error=str(e))
            return self.max_requests
        return max(0, self.max_requests - int(count))

    async def reset(self) -> None:
        await self.redis.delete(self.key)


def build_rate_limiter(redis_client=None) -> RateLimiter:
    """Redis window when the Redis cache is configured and connected, else in-process."""
    if settings.use_redis_cache() and redis_client is not None:
        return RedisRateLimiter.from_settings(redis_client)
    return SlidingWindowRateLimiter.from_settings()
