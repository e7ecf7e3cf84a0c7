"""Counter stores backing the rate limiter.

Key Schema (Redis):
    ratelimit:{scope}:{identifier}:{window}:{index} - request count for one
    fixed window, expiring at the window end.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Callable

import redis.asyncio as redis

from ...memory.base import StoreError

logger = logging.getLogger(__name__)


class QuotaStore(ABC):
    """Key/value store for window counters."""

    @abstractmethod
    async def get(self, key: str) -> int | None:
        """Current counter value, None when absent or expired."""
        pass

    @abstractmethod
    async def put(self, key: str, value: int, expire_at: int) -> None:
        """Store a counter value that expires at ``expire_at`` (epoch seconds)."""
        pass

    async def close(self) -> None:
        return None


class RedisQuotaStore(QuotaStore):
    """Redis-backed counters."""

    def __init__(self, redis_client: redis.Redis):
        self.redis_client = redis_client

    async def get(self, key: str) -> int | None:
        try:
            raw = await self.redis_client.get(key)
        except redis.RedisError as e:
            raise StoreError(f"Failed to read counter {key}: {e}") from e
        return int(raw) if raw is not None else None

    async def put(self, key: str, value: int, expire_at: int) -> None:
        try:
            await self.redis_client.set(key, value, exat=expire_at)
        except redis.RedisError as e:
            raise StoreError(f"Failed to write counter {key}: {e}") from e


class InMemoryQuotaStore(QuotaStore):
    """Process-local counters, expired against the injected clock.

    Expired counters are swept on every write, so keys of elapsed windows
    never accumulate.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self._counters: dict[str, tuple[int, int]] = {}

    async def get(self, key: str) -> int | None:
        entry = self._counters.get(key)
        if entry is None:
            return None
        value, expire_at = entry
        if self.clock() >= expire_at:
            del self._counters[key]
            return None
        return value

    async def put(self, key: str, value: int, expire_at: int) -> None:
        self._sweep()
        self._counters[key] = (value, expire_at)

    def _sweep(self) -> None:
        now = self.clock()
        expired = [k for k, (_, expire_at) in self._counters.items() if now >= expire_at]
        for key in expired:
            del self._counters[key]

    def __len__(self) -> int:
        return len(self._counters)
