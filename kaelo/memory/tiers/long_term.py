"""Long-term memory backends.

Key Schema (Redis):
    memory:{session_id}:v1 - JSON document holding the session's MemoryData,
    expiring after ``session_ttl_days`` of inactivity.
"""

import logging

import redis.asyncio as redis
from pydantic import ValidationError

from ...core.config import settings
from ...core.domain.memory import MemoryData
from ..base import LongTermMemory, StoreError

logger = logging.getLogger(__name__)


class RedisLongTermMemory(LongTermMemory):
    """Redis-backed durable session memory."""

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        max_recent_messages: int | None = None,
        ttl_seconds: int | None = None
    ):
        """Initialize the Redis memory store.

        Args:
            redis_client: Existing client, created from ``settings.redis_url`` if omitted
            max_recent_messages: Cap for stored recent messages
            ttl_seconds: Inactivity expiry, defaults to ``settings.session_ttl_days``
        """
        super().__init__(max_recent_messages)
        self.redis_client = redis_client or redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.session_ttl_days * 24 * 3600

    def _get_memory_key(self, session_id: str) -> str:
        """Get Redis key for session memory."""
        return f"memory:{session_id}:v1"

    async def _read(self, session_id: str) -> MemoryData | None:
        try:
            raw = await self.redis_client.get(self._get_memory_key(session_id))
        except redis.RedisError as e:
            raise StoreError(f"Failed to read memory for session {session_id}: {e}") from e

        if raw is None:
            return None

        try:
            return MemoryData.model_validate_json(raw)
        except ValidationError as e:
            raise StoreError(f"Corrupt memory document for session {session_id}: {e}") from e

    async def _write(self, session_id: str, data: MemoryData) -> None:
        try:
            await self.redis_client.set(
                self._get_memory_key(session_id),
                data.model_dump_json(),
                ex=self.ttl_seconds or None,
            )
        except redis.RedisError as e:
            raise StoreError(f"Failed to write memory for session {session_id}: {e}") from e

    async def _delete(self, session_id: str) -> None:
        try:
            await self.redis_client.delete(self._get_memory_key(session_id))
        except redis.RedisError as e:
            raise StoreError(f"Failed to clear memory for session {session_id}: {e}") from e

    async def close(self) -> None:
        await self.redis_client.aclose()
        logger.info("Disconnected long-term memory from Redis")


class InMemoryLongTermMemory(LongTermMemory):
    """Process-local session memory for development and tests.

    Documents are stored serialized so callers never share mutable state
    with the store.
    """

    def __init__(self, max_recent_messages: int | None = None):
        super().__init__(max_recent_messages)
        self._documents: dict[str, str] = {}

    async def _read(self, session_id: str) -> MemoryData | None:
        raw = self._documents.get(session_id)
        return MemoryData.model_validate_json(raw) if raw is not None else None

    async def _write(self, session_id: str, data: MemoryData) -> None:
        self._documents[session_id] = data.model_dump_json()

    async def _delete(self, session_id: str) -> None:
        self._documents.pop(session_id, None)
