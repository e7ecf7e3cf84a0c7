"""Unit tests for the multi-window rate limiter and its stores."""

import pytest

from conftest import FakeClock
from kaelo.interfaces.http.quota_store import InMemoryQuotaStore, QuotaStore
from kaelo.interfaces.http.rate_limiter import RateLimiter, RateLimitScope

# FakeClock starts exactly on a minute boundary
MINUTE_END = 1_700_000_100
HOUR_END = 1_700_002_800


class BrokenQuotaStore(QuotaStore):
    """Store whose every call fails."""

    def __init__(self):
        self.writes = 0

    async def get(self, key):
        raise ConnectionError("store down")

    async def put(self, key, value, expire_at):
        self.writes += 1
        raise ConnectionError("store down")


class TestRateLimiter:
    """Fixed-window admission and counting."""

    def setup_method(self):
        self.clock = FakeClock()
        self.store = InMemoryQuotaStore(clock=self.clock)

    def limiter(self, per_minute=3, per_hour=100, per_day=1000) -> RateLimiter:
        return RateLimiter(
            self.store,
            per_minute=per_minute,
            per_hour=per_hour,
            per_day=per_day,
            clock=self.clock,
        )

    @pytest.mark.asyncio
    async def test_first_request(self):
        result = await self.limiter().check_limit("1.2.3.4")

        assert result.allowed is True
        assert result.remaining == 2
        assert result.limit == 3
        assert result.window == "minute"
        assert result.reset_at == MINUTE_END

    @pytest.mark.asyncio
    async def test_minute_limit_blocks_then_resets(self):
        limiter = self.limiter()
        for _ in range(3):
            assert (await limiter.check_limit("u1", RateLimitScope.USER)).allowed

        blocked = await limiter.check_limit("u1", RateLimitScope.USER)

        assert blocked.allowed is False
        assert blocked.remaining == 0
        assert blocked.window == "minute"
        assert blocked.reset_at == MINUTE_END

        self.clock.advance(60)
        admitted = await limiter.check_limit("u1", RateLimitScope.USER)

        assert admitted.allowed is True
        # The hour window now carries the highest utilisation
        assert admitted.window == "hour"
        assert admitted.remaining == 96

    @pytest.mark.asyncio
    async def test_denied_requests_are_not_counted(self):
        limiter = self.limiter(per_minute=30)
        results = [await limiter.check_limit("10.0.0.1") for _ in range(31)]

        assert all(r.allowed for r in results[:30])
        assert results[30].allowed is False

        key = f"ratelimit:ip:10.0.0.1:minute:{int(self.clock() // 60)}"
        assert await self.store.get(key) == 30
        hour_key = f"ratelimit:ip:10.0.0.1:hour:{int(self.clock() // 3600)}"
        assert await self.store.get(hour_key) == 30

    @pytest.mark.asyncio
    async def test_hour_window_can_bind(self):
        limiter = self.limiter(per_minute=10, per_hour=3)
        for _ in range(3):
            await limiter.check_limit("u1")

        result = await limiter.check_limit("u1")

        assert result.allowed is False
        assert result.window == "hour"
        assert result.limit == 3
        assert result.reset_at == HOUR_END

    @pytest.mark.asyncio
    async def test_scopes_are_counted_separately(self):
        limiter = self.limiter(per_minute=1)

        assert (await limiter.check_limit("abc", RateLimitScope.IP)).allowed
        assert (await limiter.check_limit("abc", RateLimitScope.USER)).allowed
        assert not (await limiter.check_limit("abc", RateLimitScope.IP)).allowed

    @pytest.mark.asyncio
    async def test_store_failure_fails_open(self):
        store = BrokenQuotaStore()
        limiter = RateLimiter(store, per_minute=1, per_hour=1, per_day=1, clock=self.clock)

        first = await limiter.check_limit("u1")
        second = await limiter.check_limit("u1")

        assert first.allowed is True
        assert second.allowed is True
        assert store.writes == 6

    def test_limits_must_be_positive(self):
        with pytest.raises(ValueError):
            RateLimiter(self.store, per_minute=0, per_hour=1, per_day=1)


class TestInMemoryQuotaStore:
    @pytest.mark.asyncio
    async def test_expiry(self):
        clock = FakeClock(now=100.0)
        store = InMemoryQuotaStore(clock=clock)
        await store.put("k", 5, expire_at=160)

        assert await store.get("k") == 5

        clock.advance(60)

        assert await store.get("k") is None
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_elapsed_windows_are_swept(self):
        clock = FakeClock()
        store = InMemoryQuotaStore(clock=clock)
        limiter = RateLimiter(store, per_minute=3, per_hour=100, per_day=1000, clock=clock)

        for _ in range(120):
            assert (await limiter.check_limit("u1", RateLimitScope.USER)).allowed
            clock.advance(60)

        # Only the current minute, hour and day counters remain
        assert len(store) == 3

    @pytest.mark.asyncio
    async def test_put_drops_expired_counters(self):
        clock = FakeClock(now=100.0)
        store = InMemoryQuotaStore(clock=clock)
        await store.put("old", 1, expire_at=160)
        clock.advance(60)

        await store.put("new", 1, expire_at=220)

        assert len(store) == 1
        assert await store.get("new") == 1
