"""
Chatbot rate limiter.

Verifies:
✔ Requests up to the quota are admitted, the next one is denied
✔ retryAfterMs never exceeds the window
✔ The same key is admitted again once the window has elapsed
✔ Keys are counted independently
✔ The Redis variant maps the Lua script result and admits when Redis is down
"""

from unittest.mock import AsyncMock

import pytest

from fakes import FakeClock
from tourassist.services.rate_limiter import (
    InMemoryRateLimiter,
    RedisRateLimiter,
    build_rate_limiter,
)


WINDOW_MS = 60_000
MAX_REQUESTS = 3


def make_limiter(clock: FakeClock) -> InMemoryRateLimiter:
    return InMemoryRateLimiter(WINDOW_MS, MAX_REQUESTS, clock=clock)


class TestInMemoryRateLimiter:
    @pytest.mark.asyncio
    async def test_admits_up_to_quota_then_denies(self):
        limiter = make_limiter(FakeClock())

        decisions = [await limiter.admit("1.2.3.4") for _ in range(MAX_REQUESTS)]
        assert all(d.allowed for d in decisions)
        assert [d.remaining for d in decisions] == [2, 1, 0]

        denied = await limiter.admit("1.2.3.4")
        assert denied.allowed is False
        assert denied.window_ms == WINDOW_MS

    @pytest.mark.asyncio
    async def test_retry_after_is_time_left_in_window(self):
        clock = FakeClock()
        limiter = make_limiter(clock)
        for _ in range(MAX_REQUESTS):
            await limiter.admit("client")

        clock.advance(20)
        denied = await limiter.admit("client")

        assert denied.allowed is False
        assert 0 <= denied.retry_after_ms <= WINDOW_MS
        assert denied.retry_after_ms == 40_000

    @pytest.mark.asyncio
    async def test_admits_again_after_window_elapses(self):
        clock = FakeClock()
        limiter = make_limiter(clock)
        for _ in range(MAX_REQUESTS):
            await limiter.admit("client")
        assert (await limiter.admit("client")).allowed is False

        clock.advance(WINDOW_MS / 1000 + 0.001)
        again = await limiter.admit("client")

        assert again.allowed is True
        assert again.remaining == MAX_REQUESTS - 1

    @pytest.mark.asyncio
    async def test_keys_are_independent(self):
        limiter = make_limiter(FakeClock())
        for _ in range(MAX_REQUESTS):
            await limiter.admit("a")

        assert (await limiter.admit("a")).allowed is False
        assert (await limiter.admit("b")).allowed is True


class TestRedisRateLimiter:
    @pytest.mark.asyncio
    async def test_allowed_result(self):
        redis = AsyncMock()
        redis.eval.return_value = [1, 2, WINDOW_MS]
        limiter = RedisRateLimiter(redis, WINDOW_MS, MAX_REQUESTS)

        decision = await limiter.admit("1.2.3.4")

        assert decision.allowed is True
        assert decision.remaining == 2
        args = redis.eval.call_args.args
        assert args[1] == 1
        assert args[2] == "chatbot_rate:1.2.3.4"
        assert args[3:] == (MAX_REQUESTS, WINDOW_MS)

    @pytest.mark.asyncio
    async def test_denied_result_uses_pttl(self):
        redis = AsyncMock()
        redis.eval.return_value = [0, 0, 12_345]
        limiter = RedisRateLimiter(redis, WINDOW_MS, MAX_REQUESTS)

        decision = await limiter.admit("client")

        assert decision.allowed is False
        assert decision.retry_after_ms == 12_345

    @pytest.mark.asyncio
    async def test_negative_pttl_is_clamped(self):
        redis = AsyncMock()
        redis.eval.return_value = [0, 0, -1]
        limiter = RedisRateLimiter(redis, WINDOW_MS, MAX_REQUESTS)

        decision = await limiter.admit("client")

        assert decision.retry_after_ms == 0

    @pytest.mark.asyncio
    async def test_redis_error_admits(self):
        redis = AsyncMock()
        redis.eval.side_effect = ConnectionError("redis down")
        limiter = RedisRateLimiter(redis, WINDOW_MS, MAX_REQUESTS)

        decision = await limiter.admit("client")

        assert decision.allowed is True


def test_build_rate_limiter_picks_backend():
    assert isinstance(build_rate_limiter(WINDOW_MS, MAX_REQUESTS), InMemoryRateLimiter)
    assert isinstance(build_rate_limiter(WINDOW_MS, MAX_REQUESTS, AsyncMock()), RedisRateLimiter)
