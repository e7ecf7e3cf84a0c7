"""Long-term memory interface for durable per-session storage."""

import logging
from abc import ABC, abstractmethod
from typing import Any

from ..core.config import settings
from ..core.domain.memory import MemoryData, ProgressEntry
from ..core.domain.messages import Message, utc_now

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Exception raised when the durable session store fails."""
    pass


class LongTermMemory(ABC):
    """Durable per-session profile and history.

    Subclasses provide three storage primitives; the memory operations are
    built on top of them. There is no cross-request locking: concurrent
    writers for one session are last-write-wins.
    """

    def __init__(self, max_recent_messages: int | None = None):
        """Initialize the memory interface.

        Args:
            max_recent_messages: Cap for ``recent_messages``, matching the
                short-term memory size
        """
        self.max_recent_messages = (
            settings.short_term_message_count
            if max_recent_messages is None
            else max_recent_messages
        )

    @abstractmethod
    async def _read(self, session_id: str) -> MemoryData | None:
        """Read stored memory, None when the session does not exist."""
        pass

    @abstractmethod
    async def _write(self, session_id: str, data: MemoryData) -> None:
        """Persist memory for a session."""
        pass

    @abstractmethod
    async def _delete(self, session_id: str) -> None:
        """Delete everything stored for a session."""
        pass

    async def close(self) -> None:
        """Release backend resources."""
        return None

    async def load(self, session_id: str) -> MemoryData | None:
        """Load memory for a session.

        Returns:
            Stored MemoryData, or None as the explicit not-found signal
        """
        return await self._read(session_id)

    async def save(self, session_id: str, data: MemoryData) -> None:
        """Replace the stored memory for a session."""
        await self._write(session_id, data.model_copy(update={"last_updated": utc_now()}))

    async def update(self, session_id: str, updates: dict[str, Any]) -> MemoryData:
        """Merge a partial update into the stored memory.

        A missing session is created with default values first.
        """
        current = await self._load_or_default(session_id)
        merged = MemoryData.model_validate(
            {**current.model_dump(), **updates, "last_updated": utc_now()}
        )
        await self._write(session_id, merged)
        return merged

    async def add_message(self, session_id: str, message: Message) -> None:
        """Append a message, keeping only the most recent ones."""
        current = await self._load_or_default(session_id)
        recent = [*current.recent_messages, message][-self.max_recent_messages:]
        await self._write(
            session_id,
            current.model_copy(update={"recent_messages": recent, "last_updated": utc_now()}),
        )

    async def append_progress(self, session_id: str, entry: ProgressEntry) -> None:
        """Append a graded attempt to the progress history."""
        current = await self._load_or_default(session_id)
        await self._write(
            session_id,
            current.model_copy(update={
                "progress_history": [*current.progress_history, entry],
                "last_updated": utc_now(),
            }),
        )

    async def record_exchange(
        self,
        session_id: str,
        messages: list[Message],
        updates: dict[str, Any] | None = None,
        progress: ProgressEntry | None = None
    ) -> MemoryData:
        """Append messages, profile updates and progress in a single write.

        Either the whole exchange is stored or none of it is.
        """
        current = await self._load_or_default(session_id)
        recent = [*current.recent_messages, *messages][-self.max_recent_messages:]
        history = list(current.progress_history)
        if progress is not None:
            history.append(progress)
        merged = MemoryData.model_validate({
            **current.model_dump(),
            **(updates or {}),
            "recent_messages": recent,
            "progress_history": history,
            "last_updated": utc_now(),
        })
        await self._write(session_id, merged)
        return merged

    async def get_history(self, session_id: str, limit: int | None = None) -> list[Message]:
        """Get recent conversation history, oldest first."""
        data = await self._read(session_id)
        if data is None:
            return []
        messages = list(data.recent_messages)
        if limit is not None:
            messages = messages[-limit:] if limit > 0 else []
        return messages

    async def clear(self, session_id: str) -> None:
        """Clear all memory for a session."""
        await self._delete(session_id)
        logger.info(f"Cleared long-term memory for session {session_id}")

    async def _load_or_default(self, session_id: str) -> MemoryData:
        data = await self._read(session_id)
        return data if data is not None else MemoryData()
