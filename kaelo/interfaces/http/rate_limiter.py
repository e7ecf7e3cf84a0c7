"""Multi-window rate limiting.

Each identifier is counted in three fixed, calendar-aligned windows (minute,
hour, day). A request is admitted only if the most constrained window still
has room, and only admitted requests are counted.
"""

import logging
import time
from enum import Enum
from typing import Callable

from pydantic import BaseModel

from .quota_store import QuotaStore

logger = logging.getLogger(__name__)


class RateLimitScope(str, Enum):
    """What the identifier of a quota check refers to."""

    IP = "ip"
    USER = "user"
    SESSION = "session"


class RateLimitResult(BaseModel):
    """Outcome of a quota check against the binding window."""

    allowed: bool
    remaining: int
    reset_at: int
    limit: int
    window: str


class RateLimiter:
    """Fixed-window quota enforcement per identifier."""

    WINDOW_SIZES = (
        ("minute", 60),
        ("hour", 3600),
        ("day", 86400),
    )

    def __init__(
        self,
        store: QuotaStore,
        per_minute: int,
        per_hour: int,
        per_day: int,
        clock: Callable[[], float] = time.time
    ):
        """Initialize rate limiter.

        Args:
            store: Counter store
            per_minute: Requests allowed per minute window
            per_hour: Requests allowed per hour window
            per_day: Requests allowed per day window
            clock: Source of the current epoch time
        """
        limits = {"minute": per_minute, "hour": per_hour, "day": per_day}
        if any(limit < 1 for limit in limits.values()):
            raise ValueError("Rate limits must be at least 1")

        self.store = store
        self.limits = limits
        self.clock = clock

    async def check_limit(
        self,
        identifier: str,
        scope: RateLimitScope = RateLimitScope.IP
    ) -> RateLimitResult:
        """Check and, when admitted, count a request.

        Args:
            identifier: User id, client IP or session id
            scope: What the identifier refers to

        Returns:
            RateLimitResult for the binding window
        """
        now = self.clock()
        windows = []

        for name, size in self.WINDOW_SIZES:
            index = int(now // size)
            key = f"ratelimit:{scope.value}:{identifier}:{name}:{index}"
            try:
                count = await self.store.get(key) or 0
            except Exception as e:
                # Fail open
                logger.warning(f"Rate limit read failed for {key}, treating as 0: {e}")
                count = 0
            windows.append((name, key, count, self.limits[name], (index + 1) * size))

        # Highest utilisation binds; earlier windows win ties
        binding = windows[0]
        for window in windows[1:]:
            if window[2] / window[3] > binding[2] / binding[3]:
                binding = window

        name, _, count, limit, reset_at = binding
        allowed = count < limit

        if allowed:
            for _, key, window_count, _, window_end in windows:
                try:
                    await self.store.put(key, window_count + 1, expire_at=window_end)
                except Exception as e:
                    logger.error(f"Rate limit write failed for {key}: {e}")
        else:
            logger.warning(
                f"Rate limit exceeded for {scope.value} {identifier} "
                f"({count}/{limit} per {name})"
            )

        return RateLimitResult(
            allowed=allowed,
            remaining=max(0, limit - count - (1 if allowed else 0)),
            reset_at=reset_at,
            limit=limit,
            window=name,
        )
