"""
Chatbot request throttling.

Fixed window per client key: the first request from a key opens a window of
`window_ms`, at most `max_requests` are admitted inside it, and the window is
replaced once it has elapsed. Entries are never evicted; the map only grows
with the number of distinct client addresses seen since start-up.

This is a best-effort cost guard, not a security control.
"""

import threading
import time
from typing import Callable, Dict, Optional, Protocol

import structlog
from pydantic import BaseModel
from redis.asyncio import Redis

logger = structlog.get_logger(__name__)


class RateLimitDecision(BaseModel):
    allowed: bool
    remaining: int
    retry_after_ms: int = 0
    window_ms: int


class RateLimiter(Protocol):
    window_ms: int

    async def admit(self, key: str) -> RateLimitDecision: ...


class RateLimitEntry(BaseModel):
    count: int = 0
    reset_at_ms: float


class InMemoryRateLimiter:
    def __init__(self, window_ms: int, max_requests: int,
                 clock: Callable[[], float] = time.monotonic):
        self.window_ms = window_ms
        self.max_requests = max_requests
        self._clock = clock
        self._entries: Dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    def _now_ms(self) -> float:
        return self._clock() * 1000

    async def admit(self, key: str) -> RateLimitDecision:
        with self._lock:
            now = self._now_ms()
            entry = self._entries.get(key)
            if entry is None or now > entry.reset_at_ms:
                entry = RateLimitEntry(count=0, reset_at_ms=now + self.window_ms)
                self._entries[key] = entry

            if entry.count >= self.max_requests:
                retry_after_ms = int(max(entry.reset_at_ms - now, 0))
                logger.info("rate_limit_denied", key=key, retry_after_ms=retry_after_ms)
                return RateLimitDecision(
                    allowed=False, remaining=0,
                    retry_after_ms=retry_after_ms, window_ms=self.window_ms,
                )

            entry.count += 1
            return RateLimitDecision(
                allowed=True, remaining=self.max_requests - entry.count,
                window_ms=self.window_ms,
            )


class RedisRateLimiter:
    """
    Same contract as InMemoryRateLimiter, shared between worker processes.

    The check and the increment run in one Lua script so racing requests cannot
    exceed the quota. If Redis is unreachable the request is admitted and the
    error logged.
    """

    SCRIPT = """
    local key = KEYS[1]
    local limit = tonumber(ARGV[1])
    local window = tonumber(ARGV[2])
    local current = redis.call('GET', key)
    if current == false then
      redis.call('SET', key, 1, 'PX', window)
      return {1, limit - 1, window}
    end
    local count = tonumber(current)
    if count >= limit then
      return {0, 0, redis.call('PTTL', key)}
    end
    count = redis.call('INCR', key)
    return {1, limit - count, redis.call('PTTL', key)}
    """

    def __init__(self, redis_client: Redis, window_ms: int, max_requests: int,
                 prefix: str = "chatbot_rate"):
        self.redis_client = redis_client
        self.window_ms = window_ms
        self.max_requests = max_requests
        self.prefix = prefix

    async def admit(self, key: str) -> RateLimitDecision:
        redis_key = f"{self.prefix}:{key}"
        try:
            result = await self.redis_client.eval(
                self.SCRIPT, 1, redis_key, self.max_requests, self.window_ms
            )
        except Exception as e:
            logger.error("rate_limit_redis_error", error=str(e), key=redis_key)
            return RateLimitDecision(allowed=True, remaining=self.max_requests, window_ms=self.window_ms)

        allowed = int(result[0]) == 1
        remaining = int(result[1])
        ttl_ms = int(result[2])
        if allowed:
            return RateLimitDecision(allowed=True, remaining=remaining, window_ms=self.window_ms)

        # PTTL is -1/-2 for keys without expiry / already gone
        retry_after_ms = min(max(ttl_ms, 0), self.window_ms)
        logger.info("rate_limit_denied", key=key, retry_after_ms=retry_after_ms)
        return RateLimitDecision(
            allowed=False, remaining=0,
            retry_after_ms=retry_after_ms, window_ms=self.window_ms,
        )


def build_rate_limiter(window_ms: int, max_requests: int,
                       redis_client: Optional[Redis] = None) -> RateLimiter:
    if redis_client is not None:
        return RedisRateLimiter(redis_client, window_ms, max_requests)
    return InMemoryRateLimiter(window_ms, max_requests)
