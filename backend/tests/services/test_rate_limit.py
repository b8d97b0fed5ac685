"""Tests for the rate limiter backends."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from community_connect.services import rate_limit
from community_connect.services.rate_limit import (
    InMemoryRateLimitBackend,
    RateLimitPolicy,
    RedisRateLimitBackend,
    create_rate_limiter,
    login_policy,
    register_policy,
)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return InMemoryRateLimitBackend(clock=clock)


@pytest.mark.asyncio
async def test_allows_up_to_limit_then_denies(limiter):
    results = [await limiter.allow("login-1.2.3.4", 5, 900) for _ in range(6)]
    assert results == [True, True, True, True, True, False]


@pytest.mark.asyncio
async def test_window_resets_after_expiry(limiter, clock):
    for _ in range(5):
        await limiter.allow("login-1.2.3.4", 5, 900)
    assert await limiter.allow("login-1.2.3.4", 5, 900) is False

    clock.now += 901
    assert await limiter.allow("login-1.2.3.4", 5, 900) is True


@pytest.mark.asyncio
async def test_window_still_active_at_boundary(limiter, clock):
    for _ in range(5):
        await limiter.allow("k", 5, 900)
    clock.now += 900
    assert await limiter.allow("k", 5, 900) is False


@pytest.mark.asyncio
async def test_identifiers_are_independent(limiter):
    for _ in range(3):
        await limiter.allow("register-1.1.1.1", 3, 900)
    assert await limiter.allow("register-1.1.1.1", 3, 900) is False
    assert await limiter.allow("register-2.2.2.2", 3, 900) is True
    assert await limiter.allow("login-1.1.1.1", 3, 900) is True


@pytest.mark.asyncio
async def test_check_uses_policy_identifier(limiter):
    policy = RateLimitPolicy("login", 1, 60)
    assert await limiter.check(policy, "9.9.9.9") is True
    assert await limiter.check(policy, "9.9.9.9") is False
    assert policy.identifier("9.9.9.9") == "login-9.9.9.9"


@pytest.mark.asyncio
async def test_clear_resets_counters(limiter):
    await limiter.allow("k", 1, 60)
    assert await limiter.allow("k", 1, 60) is False
    limiter.clear()
    assert await limiter.allow("k", 1, 60) is True


def test_default_policies(make_settings):
    test_settings = make_settings(LOGIN_RATE_LIMIT=5, REGISTER_RATE_LIMIT=3)
    assert login_policy(test_settings) == RateLimitPolicy("login", 5, 900)
    assert register_policy(test_settings) == RateLimitPolicy("register", 3, 900)


def test_factory_selects_backend(make_settings):
    assert isinstance(create_rate_limiter(make_settings()), InMemoryRateLimitBackend)
    assert isinstance(create_rate_limiter(make_settings(RATE_LIMIT_BACKEND="redis")), RedisRateLimitBackend)


def _mock_redis(count: int) -> MagicMock:
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[True, count])
    redis = MagicMock()
    redis.pipeline.return_value = pipe
    return redis


@pytest.mark.asyncio
async def test_redis_backend_counts_in_window(monkeypatch):
    redis = _mock_redis(count=3)
    monkeypatch.setattr(rate_limit, "get_redis", AsyncMock(return_value=redis))

    backend = RedisRateLimitBackend("redis://localhost:6379")
    assert await backend.allow("login-1.2.3.4", 5, 900) is True

    pipe = redis.pipeline.return_value
    pipe.set.assert_called_once_with("ratelimit:login-1.2.3.4", 0, px=900_000, nx=True)
    pipe.incr.assert_called_once_with("ratelimit:login-1.2.3.4")


@pytest.mark.asyncio
async def test_redis_backend_denies_over_limit(monkeypatch):
    monkeypatch.setattr(rate_limit, "get_redis", AsyncMock(return_value=_mock_redis(count=6)))

    backend = RedisRateLimitBackend("redis://localhost:6379")
    assert await backend.allow("login-1.2.3.4", 5, 900) is False


@pytest.mark.asyncio
async def test_redis_backend_fails_open(monkeypatch):
    monkeypatch.setattr(rate_limit, "get_redis", AsyncMock(side_effect=ConnectionError("redis down")))

    backend = RedisRateLimitBackend("redis://localhost:6379")
    assert await backend.allow("login-1.2.3.4", 5, 900) is True
