"""Short-term memory: a bounded ring buffer of recent messages.

Tier 1 of the memory model. Lives in process for the active request and is
rebuilt from long-term memory at session start.
"""

from collections import deque
from typing import Iterable

from ...core.config import settings
from ...core.domain.messages import Message


class ShortTermMemory:
    """FIFO buffer of the last ``max_messages`` messages.

    Insertion always evicts the oldest message first and never reorders.
    """

    def __init__(self, max_messages: int | None = None):
        """Initialize the buffer.

        Args:
            max_messages: Capacity, defaults to ``settings.short_term_message_count``
        """
        capacity = settings.short_term_message_count if max_messages is None else max_messages
        if capacity < 1:
            raise ValueError("Short-term memory capacity must be at least 1")
        self.max_messages = capacity
        self._messages: deque[Message] = deque(maxlen=capacity)

    @classmethod
    def from_history(
        cls,
        messages: Iterable[Message],
        max_messages: int | None = None
    ) -> "ShortTermMemory":
        """Rebuild short-term memory from stored recent messages."""
        memory = cls(max_messages)
        for message in messages:
            memory.add_message(message)
        return memory

    def add_message(self, message: Message) -> None:
        self._messages.append(message)

    def get_messages(self) -> list[Message]:
        return list(self._messages)

    def get_last_messages(self, count: int) -> list[Message]:
        if count <= 0:
            return []
        return list(self._messages)[-count:]

    def clear(self) -> None:
        self._messages.clear()

    def get_count(self) -> int:
        return len(self._messages)

    def __len__(self) -> int:
        return len(self._messages)
