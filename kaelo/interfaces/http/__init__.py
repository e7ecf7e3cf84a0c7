"""HTTP interface: FastAPI app, rate limiting and quota storage."""

from .app import AppServices, ChatRequest, create_app, get_client_ip
from .quota_store import InMemoryQuotaStore, QuotaStore, RedisQuotaStore
from .rate_limiter import RateLimiter, RateLimitResult, RateLimitScope

__all__ = [
    "create_app",
    "AppServices",
    "ChatRequest",
    "get_client_ip",
    "RateLimiter",
    "RateLimitResult",
    "RateLimitScope",
    "QuotaStore",
    "RedisQuotaStore",
    "InMemoryQuotaStore",
]
